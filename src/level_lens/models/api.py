"""API request and response models."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .cefr import CEFRLevel
from .generation import BatchRequest, QuizQuestion, SimplificationResult, UsageStatistics, UserPreferences
from .leveling import TestQuestion, TestResult, TestSession


class BaseResponse(BaseModel):
    """Base response model."""
    success: bool = Field(default=True, description="Whether the request was successful")
    message: Optional[str] = Field(None, description="Response message")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Response timestamp"
    )


class ErrorResponse(BaseResponse):
    """Error response model."""
    success: bool = Field(default=False, description="Always false for errors")
    error_code: Optional[str] = Field(None, description="Machine-readable error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    request_id: Optional[str] = Field(None, description="Request identifier")

    def __init__(self, message: str, error_code: str = None, details: Dict[str, Any] = None, **kwargs):
        super().__init__(
            success=False,
            message=message,
            error_code=error_code,
            details=details or {},
            **kwargs
        )


class HealthResponse(BaseResponse):
    """Health check response model."""
    status: str = Field(..., description="Application status")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Environment name")
    provider: str = Field(..., description="Configured generation provider")
    provider_available: bool = Field(..., description="Whether generation can be used")
    cache: Dict[str, Any] = Field(default_factory=dict, description="Result cache statistics")
    pool: Dict[str, Any] = Field(default_factory=dict, description="Session pool statistics")
    active_test_sessions: int = Field(0, description="Leveling tests in progress")


class SimplifyRequest(BaseModel):
    """Request to rewrite a passage for a level."""
    text: str = Field(..., description="Passage to simplify")
    level: Optional[CEFRLevel] = Field(None, description="Target level; stored level if omitted")


class SimplifyResponse(BaseResponse):
    """Simplified passage."""
    result: SimplificationResult


class QuizRequest(BaseModel):
    """Request to generate a comprehension quiz."""
    text: str = Field(..., description="Passage the quiz is about")
    level: Optional[CEFRLevel] = Field(None, description="Target level; stored level if omitted")


class QuizResponse(BaseResponse):
    """Generated quiz."""
    questions: List[QuizQuestion] = Field(default_factory=list)
    original_text: str
    from_cache: bool = False


class BatchSubmitRequest(BaseModel):
    """Request to simplify many texts."""
    requests: List[BatchRequest] = Field(..., min_length=1, description="Texts with priorities")
    level: Optional[CEFRLevel] = Field(None, description="Target level; stored level if omitted")


class StartTestResponse(BaseResponse):
    """A new leveling session and its first question."""
    session: TestSession
    question: Optional[TestQuestion] = None


class AnswerRequest(BaseModel):
    """A timed answer to the current question."""
    question_id: str = Field(..., min_length=1)
    selected_answer: int = Field(..., ge=0)
    time_spent_ms: int = Field(0, ge=0)


class AnswerResponse(BaseResponse):
    """Outcome of an answer, plus the next question or the final result."""
    session: TestSession
    is_correct: bool
    level_changed: bool
    is_complete: bool
    next_question: Optional[TestQuestion] = None
    result: Optional[TestResult] = None


class NextQuestionResponse(BaseResponse):
    """The next question for a live session."""
    question: Optional[TestQuestion] = None


class PreferencesUpdate(BaseModel):
    """Partial update of user preferences."""
    level: Optional[CEFRLevel] = None
    enabled: Optional[bool] = None


class TestResultResponse(BaseResponse):
    """A finalized or stored leveling result."""
    __test__ = False

    result: Optional[TestResult] = None


class PreferencesResponse(BaseResponse):
    """Current user preferences."""
    preferences: UserPreferences


class StatisticsResponse(BaseResponse):
    """Usage counters."""
    statistics: UsageStatistics

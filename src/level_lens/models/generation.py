"""Text generation data models."""

from typing import List, Optional

from pydantic import BaseModel, Field

from .cefr import CEFRLevel


class SimplificationResult(BaseModel):
    """A passage rewritten for a target level."""
    simplified: str
    summary: Optional[str] = None
    original_text: str
    from_cache: bool = False


class QuizQuestion(BaseModel):
    """A generated comprehension question."""
    id: str
    question: str
    options: List[str] = Field(..., min_length=2, max_length=6)
    correct_answer: int = Field(..., ge=0)
    explanation: str = ""


class QuizResult(BaseModel):
    """Comprehension quiz generated for a passage."""
    questions: List[QuizQuestion] = Field(default_factory=list)
    original_text: str
    from_cache: bool = False


class BatchRequest(BaseModel):
    """One text in a batch; lower priority numbers are more urgent."""
    id: str = Field(..., min_length=1)
    text: str
    priority: int = 0


class BatchResult(BaseModel):
    """Outcome of one batch request."""
    id: str
    success: bool
    data: Optional[SimplificationResult] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class BatchProgress(BaseModel):
    """Progress report emitted after each chunk."""
    completed: int = Field(..., ge=0)
    total: int = Field(..., ge=0)


class UserPreferences(BaseModel):
    """User settings owned by the preferences store."""
    level: CEFRLevel = CEFRLevel.B1
    enabled: bool = True


class UsageStatistics(BaseModel):
    """Running usage counters, with daily counters reset on date change."""
    total_simplifications: int = 0
    total_quizzes: int = 0
    total_words: int = 0
    today_simplifications: int = 0
    today_quizzes: int = 0
    today_words: int = 0
    last_reset_date: str = ""

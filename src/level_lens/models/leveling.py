"""Leveling test data models."""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .cefr import CEFRLevel, QuestionCategory


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TestQuestion(BaseModel):
    """A single multiple choice question from the question bank."""
    model_config = ConfigDict(frozen=True)
    __test__ = False

    id: str = Field(..., min_length=1, description="Question id, prefixed with its level (e.g. 'b1-vocab-1')")
    level: CEFRLevel
    category: QuestionCategory
    question: str = Field(..., min_length=1, description="Question text")
    options: List[str] = Field(..., min_length=2, max_length=6, description="Answer options")
    correct_answer: int = Field(..., ge=0, description="Index of the correct option")
    explanation: str = Field(default="", description="Why the correct option is correct")
    difficulty: int = Field(..., ge=1, le=10, description="Difficulty within the scale")

    @model_validator(mode="after")
    def _check_answer_index(self) -> "TestQuestion":
        if self.correct_answer >= len(self.options):
            raise ValueError(
                f"correct_answer {self.correct_answer} out of range for {len(self.options)} options"
            )
        return self


class TestResponse(BaseModel):
    """One graded answer within a session."""
    __test__ = False

    question_id: str
    selected_answer: int
    is_correct: bool
    time_spent_ms: int = Field(..., ge=0)
    previous_level: CEFRLevel
    new_level: CEFRLevel


class TestSession(BaseModel):
    """Live state of an adaptive leveling test."""
    __test__ = False

    id: str
    start_time: datetime = Field(default_factory=_utcnow)
    end_time: Optional[datetime] = None
    initial_level: CEFRLevel
    final_level: CEFRLevel
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    responses: List[TestResponse] = Field(default_factory=list)
    completed: bool = False

    @property
    def asked_question_ids(self) -> List[str]:
        return [response.question_id for response in self.responses]


class TestResult(BaseModel):
    """Terminal snapshot of a finished session."""
    __test__ = False

    level: CEFRLevel
    confidence: float = Field(..., ge=0.0, le=1.0)
    session_id: str
    test_date: datetime
    total_questions: int = Field(..., ge=0)
    correct_answers: int = Field(..., ge=0)
    average_time_per_question_ms: float = Field(..., ge=0.0)
    category_scores: Dict[QuestionCategory, float] = Field(default_factory=dict)
    level_progression: List[CEFRLevel] = Field(default_factory=list)

    @field_validator("category_scores")
    @classmethod
    def _check_scores(cls, value: Dict[QuestionCategory, float]) -> Dict[QuestionCategory, float]:
        for category, score in value.items():
            if not 0.0 <= score <= 1.0:
                raise ValueError(f"Score for {category.value} must be within [0, 1]")
        return value


class AnswerOutcome(BaseModel):
    """What ``submit_answer`` reports back to the caller.

    ``session`` is a snapshot taken right after the answer was recorded.
    """
    session: TestSession
    is_correct: bool
    level_changed: bool
    is_complete: bool

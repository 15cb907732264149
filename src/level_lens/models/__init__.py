"""Data models for the LevelLens application."""

from .cefr import CEFRLevel, QuestionCategory, LEVEL_DESCRIPTIONS

from .leveling import (
    TestQuestion,
    TestResponse,
    TestSession,
    TestResult,
    AnswerOutcome,
)

from .generation import (
    SimplificationResult,
    QuizQuestion,
    QuizResult,
    BatchRequest,
    BatchResult,
    BatchProgress,
    UserPreferences,
    UsageStatistics,
)

from .api import (
    BaseResponse,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    # CEFR
    "CEFRLevel",
    "QuestionCategory",
    "LEVEL_DESCRIPTIONS",

    # Leveling models
    "TestQuestion",
    "TestResponse",
    "TestSession",
    "TestResult",
    "AnswerOutcome",

    # Generation models
    "SimplificationResult",
    "QuizQuestion",
    "QuizResult",
    "BatchRequest",
    "BatchResult",
    "BatchProgress",
    "UserPreferences",
    "UsageStatistics",

    # API models
    "BaseResponse",
    "ErrorResponse",
    "HealthResponse",
]

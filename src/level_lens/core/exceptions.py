"""Custom exception classes for the LevelLens application."""

from typing import Any, Dict, Optional


class LevelLensException(Exception):
    """Base exception class for all LevelLens errors."""

    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(LevelLensException):
    """Raised when input validation fails."""

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, error_code="VALIDATION_ERROR", **kwargs)
        if field:
            self.details["field"] = field


class ProviderUnavailableError(LevelLensException):
    """Raised when the text generation capability cannot be used."""

    status_code = 503

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, error_code="PROVIDER_UNAVAILABLE", **kwargs)
        if provider:
            self.details["provider"] = provider


class GenerationFailedError(LevelLensException):
    """Raised when a single generation call fails."""

    status_code = 502

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        kind: Optional[str] = None,
        **kwargs
    ) -> None:
        super().__init__(message, error_code="GENERATION_FAILED", **kwargs)
        if provider:
            self.details["provider"] = provider
        if kind:
            self.details["kind"] = kind


class InvalidSessionError(LevelLensException):
    """Raised when a leveling test session is unknown or already completed."""

    status_code = 404

    def __init__(self, message: str, session_id: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, error_code="INVALID_SESSION", **kwargs)
        if session_id:
            self.details["session_id"] = session_id


class QuestionNotFoundError(LevelLensException):
    """Raised when a question id is not in the question bank."""

    status_code = 404

    def __init__(self, message: str, question_id: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, error_code="QUESTION_NOT_FOUND", **kwargs)
        if question_id:
            self.details["question_id"] = question_id

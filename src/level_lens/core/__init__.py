"""Core application modules."""

from .config import Settings, get_settings, settings
from .logging import setup_logging, get_logger
from .exceptions import (
    LevelLensException,
    ValidationError,
    ProviderUnavailableError,
    GenerationFailedError,
    InvalidSessionError,
    QuestionNotFoundError,
)

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "setup_logging",
    "get_logger",
    "LevelLensException",
    "ValidationError",
    "ProviderUnavailableError",
    "GenerationFailedError",
    "InvalidSessionError",
    "QuestionNotFoundError",
]

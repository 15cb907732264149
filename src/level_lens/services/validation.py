"""Input validation for text adaptation requests."""

import re

from ..core import ValidationError

SUSPICIOUS_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"onload=", re.IGNORECASE),
    re.compile(r"onerror=", re.IGNORECASE),
]

MIN_ADAPTABLE_LENGTH = 8
_ONLY_SYMBOLS = re.compile(r"^[\[\](){}.,!?;:\s\-_]*$")
_MUSIC_MARKER = re.compile(r"\[Music\]", re.IGNORECASE)


def validate_text_input(text: str, min_length: int = 1, max_length: int = 10000) -> str:
    """
    Check a passage before it is sent for generation.

    Returns:
        The trimmed text

    Raises:
        ValidationError: If the text is missing, too short, too long or looks like markup injection
    """
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Text input is required", field="text")

    trimmed = text.strip()
    if len(trimmed) < min_length:
        raise ValidationError("Text is too short", field="text")
    if len(trimmed) > max_length:
        raise ValidationError(f"Text is too long (max {max_length:,} characters)", field="text")

    for pattern in SUSPICIOUS_PATTERNS:
        if pattern.search(trimmed):
            raise ValidationError("Text contains invalid content", field="text")

    return trimmed


def is_trivial_text(text: str) -> bool:
    """True for text not worth adapting: very short, only symbols, or caption markers."""
    stripped = text.strip()
    return (
        len(stripped) < MIN_ADAPTABLE_LENGTH
        or bool(_ONLY_SYMBOLS.match(stripped))
        or bool(_MUSIC_MARKER.search(stripped))
    )

"""Generation capability interface shared by all providers."""

import abc
import itertools
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SessionKind(str, Enum):
    """Kinds of generation sessions the pool keeps apart."""
    LANGUAGE_MODEL = "language_model"
    SUMMARIZER = "summarizer"
    WRITER = "writer"


class SessionConfig(BaseModel):
    """Parameters a session is created with."""
    kind: SessionKind
    system_prompt: str
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_k: Optional[int] = Field(default=None, ge=1)
    max_tokens: Optional[int] = Field(default=None, ge=1)


DEFAULT_SESSION_CONFIGS = {
    SessionKind.LANGUAGE_MODEL: SessionConfig(
        kind=SessionKind.LANGUAGE_MODEL,
        system_prompt=(
            "You are a helpful language learning assistant that simplifies text "
            "for English learners."
        ),
        temperature=0.7,
        top_k=40,
    ),
    SessionKind.SUMMARIZER: SessionConfig(
        kind=SessionKind.SUMMARIZER,
        system_prompt="You are a helpful assistant that creates clear, short summaries.",
        temperature=0.6,
    ),
    SessionKind.WRITER: SessionConfig(
        kind=SessionKind.WRITER,
        system_prompt=(
            "You are a helpful language learning assistant that creates "
            "comprehension exercises."
        ),
        temperature=0.8,
        top_k=40,
    ),
}

_session_ids = itertools.count(1)


class GenerationSession(abc.ABC):
    """A stateful, expensive handle to the generation capability."""

    def __init__(self, config: SessionConfig):
        self.config = config
        self.id = f"{config.kind.value}-{next(_session_ids)}"
        self.destroyed = False

    @property
    def kind(self) -> SessionKind:
        return self.config.kind

    @abc.abstractmethod
    async def generate(self, prompt: str) -> str:
        """Run one prompt through the session."""

    def destroy(self) -> None:
        """Release whatever the session holds. Idempotent."""
        self.destroyed = True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}{' destroyed' if self.destroyed else ''}>"


class GenerationProvider(abc.ABC):
    """Factory for generation sessions with a single availability check."""

    name: str = "provider"

    @abc.abstractmethod
    async def is_available(self) -> bool:
        """Whether sessions can be created right now."""

    @abc.abstractmethod
    async def create_session(self, config: SessionConfig) -> GenerationSession:
        """
        Create a new session.

        Raises:
            ProviderUnavailableError: If the capability cannot be used
        """

    async def aclose(self) -> None:
        """Release provider-wide resources."""
        return None

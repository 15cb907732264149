"""Shared fixtures: a scripted generation provider and small service graphs."""

import asyncio
import random
from typing import Callable, List, Optional, Tuple

import pytest

from level_lens.core import GenerationFailedError, ProviderUnavailableError, Settings
from level_lens.models.cefr import CEFRLevel, QuestionCategory
from level_lens.models.leveling import TestQuestion
from level_lens.services.container import AppContainer
from level_lens.services.preferences import InMemoryPreferencesStore
from level_lens.services.prompts import extract_prompt_payload
from level_lens.services.provider import GenerationProvider, GenerationSession, SessionConfig, SessionKind
from level_lens.services.question_bank import QuestionBank

QUIZ_OUTPUT = """Question: Where did the cat sit?
A) On the mat
B) On the roof
C) In the car
D) Under the bed
Answer: A

Question: What animal is in the text?
A) A dog
B) A cat
C) A bird
D) A fish
Answer: B
"""


class FakeSession(GenerationSession):
    """Echoes the prompt payload, tagged with the session kind."""

    def __init__(self, config: SessionConfig, provider: "FakeProvider"):
        super().__init__(config)
        self.provider = provider
        self.destroy_calls = 0

    async def generate(self, prompt: str) -> str:
        self.provider.calls.append((self.kind, prompt))
        if self.provider.hold is not None and self.provider.hold_when(self.kind, prompt):
            await self.provider.hold.wait()
        if self.provider.fail_when is not None and self.provider.fail_when(self.kind, prompt):
            raise GenerationFailedError("Scripted failure", provider="fake", kind=self.kind.value)
        if self.kind == SessionKind.WRITER:
            output = self.provider.quiz_output
        else:
            payload = extract_prompt_payload(prompt)
            output = f"{self.kind.value}: {payload[1] if payload else prompt}"
        self.provider.finished.append((self.kind, prompt))
        return output

    def destroy(self) -> None:
        self.destroy_calls += 1
        super().destroy()
        if self.provider.destroy_raises:
            raise RuntimeError("destroy exploded")


class FakeProvider(GenerationProvider):
    """Provider whose availability, failures and outputs are set by the test."""

    name = "fake"

    def __init__(self):
        self.available = True
        self.fail_when: Optional[Callable[[SessionKind, str], bool]] = None
        self.destroy_raises = False
        # Calls matching hold_when wait for hold to be set
        self.hold: Optional[asyncio.Event] = None
        self.hold_when: Callable[[SessionKind, str], bool] = lambda kind, prompt: True
        self.quiz_output = QUIZ_OUTPUT
        self.calls: List[Tuple[SessionKind, str]] = []
        self.finished: List[Tuple[SessionKind, str]] = []
        self.sessions: List[FakeSession] = []
        self.closed = False

    async def is_available(self) -> bool:
        return self.available

    async def create_session(self, config: SessionConfig) -> FakeSession:
        if not self.available:
            raise ProviderUnavailableError("Fake provider is off", provider=self.name)
        session = FakeSession(config, self)
        self.sessions.append(session)
        return session

    async def aclose(self) -> None:
        self.closed = True

    def calls_of(self, kind: SessionKind) -> List[str]:
        return [prompt for call_kind, prompt in self.calls if call_kind == kind]


def make_question(
    question_id: str,
    level: CEFRLevel,
    category: QuestionCategory = QuestionCategory.VOCABULARY,
    correct_answer: int = 0,
) -> TestQuestion:
    return TestQuestion(
        id=question_id,
        level=level,
        category=category,
        question=f"Question {question_id}?",
        options=["right", "wrong", "wrong again", "still wrong"],
        correct_answer=correct_answer,
        explanation="",
        difficulty=level.rank * 2 + 1,
    )


def build_small_bank(per_level: int = 4, seed: int = 7) -> QuestionBank:
    """Bank with ``per_level`` questions per level whose correct answer is always 0."""
    categories = list(QuestionCategory)
    questions = [
        make_question(
            f"{level.value.lower()}-q-{index}",
            level,
            category=categories[index % len(categories)],
        )
        for level in CEFRLevel
        for index in range(per_level)
    ]
    return QuestionBank(questions, rng=random.Random(seed))


@pytest.fixture
def test_settings():
    """Settings that never read the environment and never pause between chunks."""
    return Settings(
        _env_file=None,
        environment="testing",
        generation_provider="local",
        batch_chunk_delay_ms=0,
        pool_idle_timeout_seconds=30,
    )


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def small_bank():
    return build_small_bank()


@pytest.fixture
def store():
    return InMemoryPreferencesStore(initial_level=CEFRLevel.B1)


@pytest.fixture
def container(test_settings, fake_provider, store, small_bank):
    return AppContainer.build(
        test_settings,
        provider=fake_provider,
        store=store,
        question_bank=small_bank,
    )

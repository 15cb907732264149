"""Single-request text adaptation: simplification, summaries and quizzes."""

import time
from typing import Optional

from ..core import get_logger, settings as default_settings, Settings
from ..core import GenerationFailedError, ProviderUnavailableError
from ..core.logging import add_generation_context
from ..core.metrics import GENERATION_DURATION, GENERATION_FAILURES
from ..models.cefr import CEFRLevel
from ..models.generation import QuizResult, SimplificationResult
from .preferences import PreferencesStore
from .prompts import (
    build_quiz_prompt,
    build_simplification_prompt,
    build_summary_prompt,
    fallback_quiz,
    parse_quiz_text,
    truncate_summary,
)
from .provider import GenerationProvider, SessionKind
from .result_cache import ResultCache
from .session_pool import SessionPool
from .validation import is_trivial_text, validate_text_input

logger = get_logger(__name__)


class TextAdaptationService:
    """Serves simplify and quiz requests through the result cache and session pool."""

    def __init__(
        self,
        provider: GenerationProvider,
        pool: SessionPool,
        cache: ResultCache[SimplificationResult],
        quiz_cache: Optional[ResultCache[QuizResult]] = None,
        store: Optional[PreferencesStore] = None,
        config: Optional[Settings] = None,
    ):
        self.provider = provider
        self.pool = pool
        self.cache = cache
        self.quiz_cache = quiz_cache
        self.store = store
        self.settings = config or default_settings

    def check_text(self, text: str) -> str:
        """
        Raises:
            ValidationError: If the text is not acceptable for generation
        """
        return validate_text_input(
            text,
            min_length=self.settings.min_text_length,
            max_length=self.settings.max_text_length,
        )

    async def ensure_available(self) -> None:
        """
        Raises:
            ProviderUnavailableError: If the provider reports it cannot be used
        """
        if not await self.provider.is_available():
            raise ProviderUnavailableError(
                f"Text generation provider '{self.provider.name}' is not available",
                provider=self.provider.name,
            )

    def lookup(self, text: str, level: CEFRLevel) -> Optional[SimplificationResult]:
        """Cached simplification for ``(text, level)``, flagged as coming from the cache."""
        cached = self.cache.get(text, level)
        if cached is None:
            return None
        return cached.model_copy(update={"from_cache": True})

    async def simplify(self, text: str, level: CEFRLevel) -> SimplificationResult:
        """
        Rewrite ``text`` for ``level``, serving repeated requests from the cache.

        Raises:
            ValidationError: If the text is rejected
            ProviderUnavailableError: On a cache miss with no usable provider
            GenerationFailedError: If generation fails
        """
        level = CEFRLevel(level)
        self.check_text(text)

        cached = self.lookup(text, level)
        if cached is not None:
            logger.debug("Simplification served from cache", level=level.value, text_length=len(text))
            return cached

        return await self.generate_and_cache(text, level)

    async def generate_and_cache(self, text: str, level: CEFRLevel) -> SimplificationResult:
        """Generate a simplification without consulting the cache, then store it."""
        level = CEFRLevel(level)
        if is_trivial_text(text):
            return SimplificationResult(simplified=text, summary="", original_text=text)

        await self.ensure_available()

        context = add_generation_context(SessionKind.LANGUAGE_MODEL.value, level.value, text)
        start_time = time.perf_counter()
        simplified = await self.run_in_session(
            SessionKind.LANGUAGE_MODEL, build_simplification_prompt(level, text)
        )
        summary = await self._summarize(simplified, level)

        result = SimplificationResult(simplified=simplified, summary=summary, original_text=text)
        self.cache.set(text, level, result)

        if self.store is not None:
            await self.store.increment_simplification(len(text.split()))

        logger.info(
            "Text simplified",
            processing_time=round(time.perf_counter() - start_time, 3),
            simplified_length=len(simplified),
            **context,
        )
        return result

    async def generate_quiz(self, text: str, level: CEFRLevel) -> QuizResult:
        """
        Build a comprehension quiz for ``text`` at ``level``.

        Output that cannot be parsed yields one generic question.

        Raises:
            ValidationError: If the text is rejected
            ProviderUnavailableError: On a cache miss with no usable provider
            GenerationFailedError: If generation fails
        """
        level = CEFRLevel(level)
        self.check_text(text)

        if self.quiz_cache is not None:
            cached = self.quiz_cache.get(text, level)
            if cached is not None:
                return cached.model_copy(update={"from_cache": True})

        await self.ensure_available()

        quiz_text = await self.run_in_session(SessionKind.WRITER, build_quiz_prompt(level, text))
        questions = parse_quiz_text(quiz_text, level)
        if not questions:
            logger.warning("Generated quiz could not be parsed", level=level.value, output_length=len(quiz_text))
            questions = fallback_quiz(level)

        result = QuizResult(questions=questions, original_text=text)
        if self.quiz_cache is not None:
            self.quiz_cache.set(text, level, result)
        if self.store is not None:
            await self.store.increment_quiz()

        logger.info("Quiz generated", level=level.value, question_count=len(questions))
        return result

    async def run_in_session(self, kind: SessionKind, prompt: str) -> str:
        """
        Run one prompt on a pooled session of ``kind``.

        The session goes back to the pool afterwards; a session whose call
        failed or was cancelled is destroyed instead.

        Raises:
            ProviderUnavailableError: If no session can be created
            GenerationFailedError: If the call fails
        """
        session = await self.pool.acquire(kind)
        # Only a call that returned normally leaves a reusable session
        failed = True
        try:
            with GENERATION_DURATION.labels(kind=kind.value).time():
                output = await session.generate(prompt)
            failed = False
            return output
        except GenerationFailedError:
            GENERATION_FAILURES.labels(kind=kind.value).inc()
            raise
        except Exception as exc:
            GENERATION_FAILURES.labels(kind=kind.value).inc()
            logger.error("Generation call failed", kind=kind.value, session_id=session.id, error=str(exc))
            raise GenerationFailedError(
                f"Generation failed: {str(exc)}", provider=self.provider.name, kind=kind.value
            ) from exc
        finally:
            if failed:
                self.pool.discard(session, kind)
            else:
                self.pool.release(session, kind)

    async def _summarize(self, simplified: str, level: CEFRLevel) -> str:
        if not self.settings.summaries_enabled:
            return truncate_summary(simplified)
        try:
            return await self.run_in_session(SessionKind.SUMMARIZER, build_summary_prompt(level, simplified))
        except (GenerationFailedError, ProviderUnavailableError) as exc:
            logger.warning("Summary generation failed, using truncated text", error=exc.message)
            return truncate_summary(simplified)

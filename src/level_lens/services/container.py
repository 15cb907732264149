"""Construction and teardown of the stateful service graph."""

from dataclasses import dataclass
from typing import Optional

from ..core import get_logger, settings as default_settings, Settings
from ..models.cefr import CEFRLevel
from ..models.generation import QuizResult, SimplificationResult
from .batch_scheduler import BatchScheduler
from .leveling import LevelingTestEngine
from .llm import OpenAIGenerationProvider
from .preferences import InMemoryPreferencesStore, PreferencesStore
from .provider import GenerationProvider
from .question_bank import QuestionBank, get_question_bank
from .result_cache import ResultCache
from .rule_based import RuleBasedGenerationProvider
from .session_pool import SessionPool
from .text_adaptation import TextAdaptationService

logger = get_logger(__name__)


def build_provider(config: Settings) -> GenerationProvider:
    """Resolve the configured generation backend."""
    name = config.generation_provider.lower()
    if name == "openai":
        return OpenAIGenerationProvider(config)
    if name == "local":
        return RuleBasedGenerationProvider()
    raise ValueError(f"Unknown generation provider: {config.generation_provider}")


@dataclass
class AppContainer:
    """Owns every shared, mutable component for one application instance."""

    settings: Settings
    provider: GenerationProvider
    cache: ResultCache[SimplificationResult]
    quiz_cache: ResultCache[QuizResult]
    pool: SessionPool
    store: PreferencesStore
    adaptation: TextAdaptationService
    scheduler: BatchScheduler
    question_bank: QuestionBank
    leveling: LevelingTestEngine

    @classmethod
    def build(
        cls,
        config: Optional[Settings] = None,
        provider: Optional[GenerationProvider] = None,
        store: Optional[PreferencesStore] = None,
        question_bank: Optional[QuestionBank] = None,
    ) -> "AppContainer":
        config = config or default_settings
        provider = provider or build_provider(config)
        store = store or InMemoryPreferencesStore(initial_level=CEFRLevel(config.default_level))
        question_bank = question_bank or get_question_bank()

        cache_options = dict(
            max_entries=config.cache_max_entries,
            ttl_seconds=config.cache_ttl_seconds,
            eviction_fraction=config.cache_eviction_fraction,
            fingerprint_max_chars=config.cache_fingerprint_max_chars,
        )
        cache: ResultCache[SimplificationResult] = ResultCache(name="simplify", **cache_options)
        quiz_cache: ResultCache[QuizResult] = ResultCache(name="quiz", **cache_options)

        # Entries for the old level are unreachable by key but should not linger
        def clear_caches(old_level: CEFRLevel, new_level: CEFRLevel) -> None:
            cache.clear()
            quiz_cache.clear()

        store.on_level_change(clear_caches)

        pool = SessionPool(
            provider,
            max_pool_size=config.pool_max_size,
            idle_timeout=config.pool_idle_timeout_seconds,
        )
        adaptation = TextAdaptationService(
            provider=provider,
            pool=pool,
            cache=cache,
            quiz_cache=quiz_cache,
            store=store,
            config=config,
        )
        scheduler = BatchScheduler(
            adaptation,
            chunk_size=config.batch_chunk_size,
            chunk_delay=config.batch_chunk_delay_seconds,
        )
        leveling = LevelingTestEngine(
            question_bank,
            max_questions=config.test_max_questions,
            initial_level=CEFRLevel(config.test_initial_level),
            stabilization_window=config.test_stabilization_window,
        )

        logger.info(
            "Service container built",
            provider=provider.name,
            pool_max_size=config.pool_max_size,
            cache_max_entries=config.cache_max_entries,
        )
        return cls(
            settings=config,
            provider=provider,
            cache=cache,
            quiz_cache=quiz_cache,
            pool=pool,
            store=store,
            adaptation=adaptation,
            scheduler=scheduler,
            question_bank=question_bank,
            leveling=leveling,
        )

    async def shutdown(self) -> None:
        """Destroy pooled sessions and close the provider."""
        self.pool.cleanup()
        await self.provider.aclose()
        logger.info("Service container shut down")

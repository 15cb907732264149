"""Service layer for leveling and text adaptation."""

from .provider import GenerationProvider, GenerationSession, SessionConfig, SessionKind
from .llm import OpenAIGenerationProvider
from .rule_based import RuleBasedGenerationProvider
from .question_bank import QuestionBank, get_question_bank
from .leveling import LevelingTestEngine
from .result_cache import ResultCache
from .session_pool import SessionPool
from .preferences import PreferencesStore, InMemoryPreferencesStore
from .text_adaptation import TextAdaptationService
from .batch_scheduler import BatchScheduler
from .container import AppContainer, build_provider

__all__ = [
    "GenerationProvider",
    "GenerationSession",
    "SessionConfig",
    "SessionKind",
    "OpenAIGenerationProvider",
    "RuleBasedGenerationProvider",
    "QuestionBank",
    "get_question_bank",
    "LevelingTestEngine",
    "ResultCache",
    "SessionPool",
    "PreferencesStore",
    "InMemoryPreferencesStore",
    "TextAdaptationService",
    "BatchScheduler",
    "AppContainer",
    "build_provider",
]

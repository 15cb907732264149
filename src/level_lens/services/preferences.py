"""Persisted user state: current level, last test result and usage counters."""

import abc
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..core import get_logger
from ..models.cefr import CEFRLevel
from ..models.generation import UsageStatistics, UserPreferences
from ..models.leveling import TestResult

logger = get_logger(__name__)

LevelChangeListener = Callable[[CEFRLevel, CEFRLevel], Union[None, Awaitable[None]]]

PREFERENCES_KEY = "preferences"
LAST_RESULT_KEY = "last_test_result"
STATISTICS_KEY = "statistics"


class PreferencesStore(abc.ABC):
    """
    Typed access to an external key/value store.

    Subclasses only implement ``get`` and ``set``; values are stored as
    plain JSON-compatible dicts.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today
        self._level_listeners: List[LevelChangeListener] = []

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Read a raw value, or None if unset."""

    @abc.abstractmethod
    async def set(self, key: str, value: Dict[str, Any]) -> None:
        """Write a raw value."""

    def on_level_change(self, listener: LevelChangeListener) -> None:
        """Register a callback run with ``(old_level, new_level)`` whenever the level changes."""
        self._level_listeners.append(listener)

    async def get_preferences(self) -> UserPreferences:
        raw = await self.get(PREFERENCES_KEY)
        return UserPreferences.model_validate(raw) if raw else UserPreferences()

    async def get_level(self) -> CEFRLevel:
        return (await self.get_preferences()).level

    async def save_preferences(
        self,
        level: Optional[CEFRLevel] = None,
        enabled: Optional[bool] = None,
    ) -> UserPreferences:
        """Apply a partial update and notify level listeners if the level changed."""
        current = await self.get_preferences()
        updated = current.model_copy(
            update={
                key: value
                for key, value in {"level": level, "enabled": enabled}.items()
                if value is not None
            }
        )
        await self.set(PREFERENCES_KEY, updated.model_dump(mode="json"))

        if updated.level != current.level:
            logger.info("Level changed", old_level=current.level.value, new_level=updated.level.value)
            for listener in self._level_listeners:
                outcome = listener(current.level, updated.level)
                if outcome is not None:
                    await outcome

        return updated

    async def get_last_result(self) -> Optional[TestResult]:
        raw = await self.get(LAST_RESULT_KEY)
        return TestResult.model_validate(raw) if raw else None

    async def save_last_result(self, result: TestResult) -> None:
        """Persist a finished test and adopt its level."""
        await self.set(LAST_RESULT_KEY, result.model_dump(mode="json"))
        await self.save_preferences(level=result.level)

    async def get_statistics(self) -> UsageStatistics:
        """Current counters, resetting the daily ones when the date has changed."""
        raw = await self.get(STATISTICS_KEY)
        stats = UsageStatistics.model_validate(raw) if raw else UsageStatistics()

        today = self._today().isoformat()
        if stats.last_reset_date != today:
            stats = stats.model_copy(
                update={
                    "today_simplifications": 0,
                    "today_quizzes": 0,
                    "today_words": 0,
                    "last_reset_date": today,
                }
            )
            await self.set(STATISTICS_KEY, stats.model_dump(mode="json"))
        return stats

    async def increment_simplification(self, word_count: int) -> UsageStatistics:
        stats = await self.get_statistics()
        stats = stats.model_copy(
            update={
                "total_simplifications": stats.total_simplifications + 1,
                "total_words": stats.total_words + word_count,
                "today_simplifications": stats.today_simplifications + 1,
                "today_words": stats.today_words + word_count,
            }
        )
        await self.set(STATISTICS_KEY, stats.model_dump(mode="json"))
        return stats

    async def increment_quiz(self) -> UsageStatistics:
        stats = await self.get_statistics()
        stats = stats.model_copy(
            update={
                "total_quizzes": stats.total_quizzes + 1,
                "today_quizzes": stats.today_quizzes + 1,
            }
        )
        await self.set(STATISTICS_KEY, stats.model_dump(mode="json"))
        return stats


class InMemoryPreferencesStore(PreferencesStore):
    """Process-local store, suitable for a single instance and for tests."""

    def __init__(
        self,
        initial_level: CEFRLevel = CEFRLevel.B1,
        today: Callable[[], date] = date.today,
    ):
        super().__init__(today=today)
        self._data: Dict[str, Dict[str, Any]] = {
            PREFERENCES_KEY: UserPreferences(level=initial_level).model_dump(mode="json"),
        }

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._data.get(key)
        return dict(value) if value is not None else None

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        self._data[key] = dict(value)

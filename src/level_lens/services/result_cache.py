"""Content-addressed cache of generated transformations."""

import hashlib
import math
import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from ..core import get_logger
from ..core.metrics import CACHE_EVICTIONS, CACHE_LOOKUPS
from ..models.cefr import CEFRLevel

logger = get_logger(__name__)

T = TypeVar("T")

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Trim and collapse runs of whitespace."""
    return _WHITESPACE.sub(" ", text).strip()


def fingerprint(text: str, level: CEFRLevel, max_chars: Optional[int] = None) -> str:
    """
    Stable cache key for ``(level, text)``.

    Only the first ``max_chars`` characters of the normalized text are
    hashed; inputs sharing that prefix at the same level are treated as the
    same request. Not meant to be collision-proof against adversarial input.
    """
    normalized = normalize_text(text)
    if max_chars is not None:
        normalized = normalized[:max_chars]
    digest = hashlib.sha256(f"{CEFRLevel(level).value}\x00{normalized}".encode("utf-8"))
    return digest.hexdigest()


@dataclass
class CacheEntry(Generic[T]):
    value: T
    timestamp: float


class ResultCache(Generic[T]):
    """
    Maps (text, level) to the most recently computed value.

    Entries older than ``ttl_seconds`` are treated as absent and dropped on
    lookup. At capacity the oldest ``eviction_fraction`` of entries are
    purged in one go before inserting. Entries are kept in timestamp order
    (an overwrite moves the key to the newest end), so both lookups and
    purges are O(1) per entry touched.
    """

    def __init__(
        self,
        name: str = "results",
        max_entries: int = 1000,
        ttl_seconds: float = 24 * 60 * 60,
        eviction_fraction: float = 0.2,
        fingerprint_max_chars: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if not 0.0 < eviction_fraction <= 1.0:
            raise ValueError("eviction_fraction must be within (0, 1]")

        self.name = name
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.eviction_fraction = eviction_fraction
        self.fingerprint_max_chars = fingerprint_max_chars
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def key_for(self, text: str, level: CEFRLevel) -> str:
        return fingerprint(text, level, self.fingerprint_max_chars)

    def get(self, text: str, level: CEFRLevel) -> Optional[T]:
        """Return the cached value, or None on a miss or an expired entry."""
        key = self.key_for(text, level)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() - entry.timestamp >= self.ttl_seconds:
                del self._entries[key]
                self._evictions += 1
                CACHE_EVICTIONS.labels(cache=self.name, reason="expired").inc()
                entry = None

            if entry is None:
                self._misses += 1
                CACHE_LOOKUPS.labels(cache=self.name, outcome="miss").inc()
                return None

            self._hits += 1
            CACHE_LOOKUPS.labels(cache=self.name, outcome="hit").inc()
            return entry.value

    def set(self, text: str, level: CEFRLevel, value: T) -> None:
        """Store or overwrite the value for ``(text, level)``."""
        key = self.key_for(text, level)
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                self._evict_oldest()
            self._entries[key] = CacheEntry(value=value, timestamp=self._clock())

    def clear(self) -> None:
        """Drop every entry immediately."""
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
        logger.info("Result cache cleared", cache=self.name, dropped=dropped)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _evict_oldest(self) -> None:
        # Caller holds the lock
        count = min(len(self._entries), max(1, math.ceil(len(self._entries) * self.eviction_fraction)))
        for _ in range(count):
            self._entries.popitem(last=False)
        self._evictions += count
        CACHE_EVICTIONS.labels(cache=self.name, reason="capacity").inc(count)
        logger.debug("Result cache purged oldest entries", cache=self.name, evicted=count)

"""In-memory TTL cache store."""

import copy
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class _CacheEntry:
    value: Any
    stored_at: float
    ttl: float


@dataclass(frozen=True)
class CacheStats:
    """Cache counters since start or the last clear()."""

    entry_count: int
    hit_count: int
    miss_count: int
    set_count: int
    eviction_count: int

    @property
    def hit_ratio(self) -> float | None:
        lookups = self.hit_count + self.miss_count
        if lookups == 0:
            return None
        return self.hit_count / lookups

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_count": self.entry_count,
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "set_count": self.set_count,
            "eviction_count": self.eviction_count,
            "hit_ratio": self.hit_ratio,
        }


class TTLCache:
    """Key -> value store where every entry carries its own TTL.

    Expiry is lazy: an entry past its TTL reads as absent from get() but stays
    stored, so get_stale() can still serve it as a fallback until it is swept,
    evicted or invalidated.

    Attributes:
        max_entries: Upper bound on stored entries (oldest insertion evicted)
    """

    def __init__(
        self,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._evictions = 0

    @staticmethod
    def _check_key(key: str) -> None:
        if not isinstance(key, str) or not key:
            raise ValueError(f"Cache key must be a non-empty string, got {key!r}")

    @staticmethod
    def _detach(value: Any) -> Any:
        # Hand out copies of mutable containers so callers can't edit cached state
        if isinstance(value, (list, dict, set)):
            return copy.copy(value)
        return value

    def _is_fresh(self, entry: _CacheEntry, now: float) -> bool:
        return now - entry.stored_at < entry.ttl

    def get(self, key: str) -> Any | None:
        """Get value if present and fresh."""
        self._check_key(key)
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry, self._clock()):
            self._hits += 1
            logger.debug(f"Cache hit: {key}")
            return self._detach(entry.value)

        self._misses += 1
        logger.debug(f"Cache miss: {key}")
        return None

    def get_stale(self, key: str) -> Any | None:
        """Get the last stored value regardless of freshness."""
        self._check_key(key)
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._detach(entry.value)

    def has(self, key: str) -> bool:
        """Check for a fresh entry without touching the counters."""
        self._check_key(key)
        entry = self._entries.get(key)
        return entry is not None and self._is_fresh(entry, self._clock())

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store value with TTL (seconds), replacing any existing entry."""
        self._check_key(key)
        if ttl <= 0:
            raise ValueError(f"TTL must be positive, got {ttl}")

        # Re-insert so insertion order tracks the latest write
        self._entries.pop(key, None)
        if self.max_entries is not None and len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            self._evictions += 1
            logger.debug(f"Cache evicted {oldest} (max_entries={self.max_entries})")

        self._entries[key] = _CacheEntry(value=value, stored_at=self._clock(), ttl=ttl)
        self._sets += 1
        logger.debug(f"Cache set: {key} (ttl={ttl}s)")

    def invalidate(self, key: str) -> None:
        """Remove entry if present."""
        self._check_key(key)
        if self._entries.pop(key, None) is not None:
            logger.debug(f"Cache invalidate: {key}")

    def invalidate_pattern(self, pattern: str) -> int:
        """Remove every entry whose key contains pattern.

        Returns:
            Number of entries removed
        """
        keys = [k for k in self._entries if pattern in k]
        for key in keys:
            del self._entries[key]
        logger.debug(f"Cache invalidate pattern: {pattern!r} ({len(keys)} entries)")
        return len(keys)

    def clear(self) -> None:
        """Remove all entries and reset counters."""
        self._entries.clear()
        self._reset_counters()
        logger.debug("Cache cleared")

    def get_age(self, key: str) -> float | None:
        """Seconds since key was stored, fresh or not."""
        self._check_key(key)
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock() - entry.stored_at

    def sweep(self, max_stale: float = 0.0) -> int:
        """Drop entries older than their TTL plus max_stale seconds.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [
            k for k, e in self._entries.items() if now - e.stored_at >= e.ttl + max_stale
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} entries")
        return len(expired)

    def stats(self) -> CacheStats:
        return CacheStats(
            entry_count=len(self._entries),
            hit_count=self._hits,
            miss_count=self._misses,
            set_count=self._sets,
            eviction_count=self._evictions,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and bool(key) and self.has(key)

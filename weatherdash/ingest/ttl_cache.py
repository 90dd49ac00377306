"""In-memory TTL cache with hit/miss accounting."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from weatherdash.models.common import format_coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStats:
    keys: int
    hits: int
    misses: int


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


def make_key(prefix: str, lat: float, lon: float) -> str:
    """Build "prefix:LAT,LON" with fixed 4-decimal coordinates."""
    return f"{prefix}:{format_coordinate(lat)},{format_coordinate(lon)}"


class TTLCache:
    """Key/value store whose entries expire a fixed time after being set.

    Reads never extend an entry's lifetime. ``clear()`` drops every entry
    but keeps the cumulative hit/miss counters.
    """

    def __init__(
        self,
        default_ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is not None and self._clock() >= entry.expires_at:
            del self._entries[key]
            logger.debug("Cache expired: %s", key)
            entry = None
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` for ``ttl`` seconds (the cache default if None).

        A non-positive ttl stores nothing.
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def delete_where(self, predicate: Callable[[str], bool]) -> int:
        """Remove every key matching ``predicate``; returns how many went."""
        doomed = [k for k in self._entries if predicate(k)]
        for k in doomed:
            del self._entries[k]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("Cache flushed")

    def keys(self) -> list[str]:
        self._evict_expired()
        return list(self._entries)

    def stats(self) -> CacheStats:
        self._evict_expired()
        return CacheStats(keys=len(self._entries), hits=self._hits, misses=self._misses)

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for k in expired:
            del self._entries[k]

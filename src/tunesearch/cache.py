"""Request-level result cache for search.

Entries are served only while younger than the TTL. Every ``put`` runs a
sweep that drops stale entries and then, if the store is still over
capacity, the oldest entries by creation time.
"""

import asyncio
import json
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from .config import DEFAULT_CACHE_MAX_ITEMS, DEFAULT_CACHE_TTL_SECONDS
from .logging_config import get_logger
from .models import SearchRequest, SearchResultItem

logger = get_logger(__name__)


class Clock(Protocol):
    def now(self) -> float:
        """Current time in seconds."""


class SystemClock:
    """Monotonic clock; unaffected by wall-clock adjustments."""

    def now(self) -> float:
        return time.monotonic()


@dataclass
class CacheEntry:
    """Cached search results for one canonical request."""

    key: str
    created_at: float
    results: tuple[SearchResultItem, ...]

    def age(self, now: float) -> float:
        return now - self.created_at

    def is_stale(self, now: float, ttl_seconds: float) -> bool:
        return self.age(now) >= ttl_seconds


@dataclass
class CacheStats:
    """Cache performance statistics."""

    hits: int = 0
    misses: int = 0
    stale_reads: int = 0
    expired_removed: int = 0
    evictions: int = 0
    entry_count: int = 0
    hit_rate: float = 0.0

    def update_hit_rate(self):
        total = self.hits + self.misses
        self.hit_rate = self.hits / total if total > 0 else 0.0


def make_cache_key(request: SearchRequest) -> str:
    """Canonical, order-independent key for ``(query, filters, limit)``.

    Unset filter fields are dropped, so a request without filters and one
    with an empty filter set share a key.
    """
    filters = {}
    if request.filters is not None:
        filters = request.filters.model_dump(by_alias=True, exclude_none=True)
    payload: dict[str, Any] = {"query": request.query_text, "filters": filters, "limit": request.limit}
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class CacheStore:
    """TTL and capacity bounded cache shared by all concurrent requests."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        max_items: int = DEFAULT_CACHE_MAX_ITEMS,
        clock: Clock | None = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_items = max_items
        self.clock = clock or SystemClock()
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    async def get(self, key: str) -> CacheEntry | None:
        """Return the entry for ``key`` if it is still fresh, else None.

        Stale entries are left in place for the next sweep.
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                self._stats.update_hit_rate()
                return None

            if entry.is_stale(self.clock.now(), self.ttl_seconds):
                self._stats.misses += 1
                self._stats.stale_reads += 1
                self._stats.update_hit_rate()
                return None

            self._stats.hits += 1
            self._stats.update_hit_rate()
            return entry

    async def put(self, key: str, results: Sequence[SearchResultItem]) -> CacheEntry:
        """Insert or overwrite ``key`` with ``created_at = now``, then sweep."""
        async with self._lock:
            entry = CacheEntry(key=key, created_at=self.clock.now(), results=tuple(results))
            # Re-insert so dict order tracks insertion time for tie-breaking.
            self._entries.pop(key, None)
            self._entries[key] = entry
            self._sweep_locked()
            return entry

    async def sweep(self) -> int:
        """Drop stale and excess entries. Returns how many were removed."""
        async with self._lock:
            return self._sweep_locked()

    def _sweep_locked(self) -> int:
        now = self.clock.now()
        stale_keys = [key for key, entry in self._entries.items() if entry.is_stale(now, self.ttl_seconds)]
        for key in stale_keys:
            del self._entries[key]
        self._stats.expired_removed += len(stale_keys)

        evicted = 0
        overflow = len(self._entries) - self.max_items
        if overflow > 0:
            # sorted() is stable, so equal timestamps fall back to insertion order
            oldest = sorted(self._entries.values(), key=lambda entry: entry.created_at)[:overflow]
            for entry in oldest:
                del self._entries[entry.key]
            evicted = len(oldest)
            self._stats.evictions += evicted

        self._stats.entry_count = len(self._entries)
        if stale_keys or evicted:
            logger.debug(
                "Cache sweep removed %d stale and %d excess entries (%d remain)",
                len(stale_keys),
                evicted,
                len(self._entries),
            )
        return len(stale_keys) + evicted

    async def clear(self):
        async with self._lock:
            self._entries.clear()
            self._stats = CacheStats()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get_stats(self) -> CacheStats:
        self._stats.entry_count = len(self._entries)
        return self._stats

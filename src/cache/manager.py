"""Result cache: TTL-checked search results on top of a KV store."""

import time
from datetime import timedelta
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, ValidationError

from src.cache.store import KVStore, MemoryKVStore, SqliteKVStore
from src.logging import log_cache_operation
from src.state.models import CacheEntry, CacheInfo, SearchResult

logger = structlog.get_logger()

DEFAULT_TTL = timedelta(minutes=20)


class CacheStats(BaseModel):
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expired: int = 0
    writes: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate percentage."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class ResultCache:
    """Owns all reads and writes of cached search results.

    Expired entries stay in storage until overwritten; reads past the TTL
    are misses.
    """

    def __init__(
        self,
        store: KVStore,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], int] = _epoch_ms,
    ):
        """Initialize the result cache.

        Args:
            store: KV storage (one logical instance)
            ttl: Maximum age of an entry served as a hit
            clock: Returns the current time in epoch milliseconds
        """
        self._store = store
        self._ttl_ms = int(ttl.total_seconds() * 1000)
        self._clock = clock
        self._stats = CacheStats()

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Stored entry for ``key`` regardless of age, or None."""
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate(raw)
        except ValidationError as e:
            logger.warning("Unreadable cache entry ignored", key=key, error=str(e))
            return None

    async def put(self, key: str, result: SearchResult) -> CacheEntry:
        """Store ``result`` under ``key`` with a fresh timestamp."""
        entry = CacheEntry(
            key=key,
            stored_at_epoch_ms=self._clock(),
            result=result.model_copy(update={"cache": None}),
        )
        await self._store.put(key, entry.to_wire())
        self._stats.writes += 1
        log_cache_operation("put", key)
        return entry

    async def lookup(self, key: str) -> Optional[SearchResult]:
        """Cached result younger than the TTL, marked as a hit; else None."""
        entry = await self.get(key)
        if entry is None:
            self._stats.misses += 1
            log_cache_operation("miss", key, hit_rate=self._stats.hit_rate)
            return None

        age_ms = self._clock() - entry.stored_at_epoch_ms
        if age_ms >= self._ttl_ms:
            self._stats.misses += 1
            self._stats.expired += 1
            log_cache_operation("expired", key, age_seconds=age_ms // 1000, hit_rate=self._stats.hit_rate)
            return None

        self._stats.hits += 1
        age_seconds = max(0, age_ms // 1000)
        log_cache_operation("hit", key, age_seconds=age_seconds, hit_rate=self._stats.hit_rate)
        return entry.result.model_copy(
            update={"cache": CacheInfo(hit=True, key=key, age_seconds=age_seconds)}
        )

    def get_stats(self) -> CacheStats:
        return self._stats.model_copy()


def create_result_cache(settings) -> ResultCache:
    """Result cache backed by SQLite, or by memory when caching is disabled."""
    if settings.cache_enabled:
        store: KVStore = SqliteKVStore(settings.cache_path, instance=settings.cache_namespace)
    else:
        store = MemoryKVStore()
    return ResultCache(store, ttl=timedelta(minutes=settings.cache_ttl_minutes))

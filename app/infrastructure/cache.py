"""
Read-Through Cache

In-process TTL cache shared by every external data provider.
Keys are provider-scoped composites ("football-data:team:psg").

Only successful producer results are stored: a producer that raises
leaves the key empty so the next call retries the provider.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

from app.config.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheStats:
    """Counters exposed for diagnostics."""
    hits: int = 0
    misses: int = 0
    keys: int = 0


class ReadThroughCache:
    """
    Keyed cache with per-entry TTL.

    Expired entries are dropped lazily on access, plus a sweep every
    `sweep_interval` seconds of writes to bound memory.
    """

    def __init__(
        self,
        default_ttl: int = 1800,
        sweep_interval: int = 120,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._last_sweep = clock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Tuple[bool, Any]:
        """Return (found, value) for a live entry."""
        entry = self._entries.get(key)
        if entry is None:
            return False, None

        expires_at, value = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return False, None

        return True, value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        now = self._clock()
        self._entries[key] = (now + (ttl if ttl is not None else self.default_ttl), value)

        if now - self._last_sweep >= self._sweep_interval:
            self._sweep(now)

    async def get_or_fetch(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        ttl: Optional[int] = None,
    ) -> T:
        """
        Return the cached value for key, or await producer and cache its result.

        Args:
            key: Provider-scoped cache key
            producer: Zero-argument coroutine factory
            ttl: Entry lifetime in seconds (defaults to the cache default)

        Returns:
            Cached or freshly produced value

        Raises:
            Whatever the producer raises (nothing is cached in that case)
        """
        found, value = self.get(key)
        if found:
            self._hits += 1
            logger.debug(f"Cache hit for key: {key}")
            return value

        self._misses += 1
        logger.debug(f"Cache miss for key: {key}")

        value = await producer()
        self.set(key, value, ttl)
        return value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)
        logger.debug(f"Cache invalidated for key: {key}")

    def clear(self) -> None:
        self._entries.clear()
        logger.info("All cache cleared")

    def stats(self) -> CacheStats:
        return CacheStats(hits=self._hits, misses=self._misses, keys=len(self._entries))

    def _sweep(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now


# =============================================================================
# Singleton Instance
# =============================================================================

_cache_instance: Optional[ReadThroughCache] = None


def get_cache() -> ReadThroughCache:
    """Get or create the shared provider cache."""
    global _cache_instance

    if _cache_instance is None:
        _cache_instance = ReadThroughCache(default_ttl=settings.cache_ttl_seconds)

    return _cache_instance

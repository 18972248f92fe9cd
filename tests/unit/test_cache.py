"""
Unit tests for the read-through TTL cache.
"""

import pytest

from app.infrastructure.cache import ReadThroughCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ReadThroughCache(default_ttl=60, sweep_interval=10, clock=clock)


class TestReadThroughCache:
    """Tests for get_or_fetch, expiry and failure behavior."""

    @pytest.mark.asyncio
    async def test_second_call_hits_cache(self, cache):
        calls = []

        async def producer():
            calls.append(1)
            return "value"

        assert await cache.get_or_fetch("k", producer) == "value"
        assert await cache.get_or_fetch("k", producer) == "value"
        assert len(calls) == 1
        assert cache.stats().hits == 1
        assert cache.stats().misses == 1

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, cache, clock):
        values = iter(["first", "second"])

        async def producer():
            return next(values)

        assert await cache.get_or_fetch("k", producer, ttl=30) == "first"
        clock.now += 29
        assert await cache.get_or_fetch("k", producer, ttl=30) == "first"
        clock.now += 1
        assert await cache.get_or_fetch("k", producer, ttl=30) == "second"

    @pytest.mark.asyncio
    async def test_failed_producer_is_not_cached(self, cache):
        attempts = []

        async def failing():
            attempts.append(1)
            raise RuntimeError("provider down")

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("k", failing)

        found, _ = cache.get("k")
        assert found is False

        async def working():
            return 42

        assert await cache.get_or_fetch("k", working) == 42
        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_none_results_are_cached(self, cache):
        calls = []

        async def producer():
            calls.append(1)
            return None

        await cache.get_or_fetch("k", producer)
        await cache.get_or_fetch("k", producer)
        assert len(calls) == 1

    def test_sweep_drops_expired_entries(self, cache, clock):
        cache.set("old", 1, ttl=5)
        clock.now += 20
        cache.set("new", 2)
        assert cache.stats().keys == 1

    def test_invalidate_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert cache.get("a") == (False, None)
        cache.clear()
        assert cache.stats().keys == 0

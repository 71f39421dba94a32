"""Tests for the in-memory cache."""

import asyncio

import pytest

from scamwatch.cache import InMemoryCache

from .conftest import FakeClock


class TestInMemoryCache:
    """Test basic cache operations."""

    def test_set_and_get(self):
        cache = InMemoryCache()
        cache.set("key", {"a": 1})

        assert cache.get("key") == {"a": 1}
        assert cache.get("missing") is None

    def test_entries_expire(self):
        clock = FakeClock()
        cache = InMemoryCache(clock=clock)
        cache.set("key", "value", ttl_seconds=60)

        clock.advance(59)
        assert cache.get("key") == "value"

        clock.advance(1)
        assert cache.get("key") is None

    def test_default_ttl(self):
        clock = FakeClock()
        cache = InMemoryCache(default_ttl=10, clock=clock)
        cache.set("key", "value")

        clock.advance(11)
        assert cache.get("key") is None

    def test_no_ttl_never_expires(self):
        clock = FakeClock()
        cache = InMemoryCache(clock=clock)
        cache.set("key", "value")

        clock.advance(10**9)
        assert cache.get("key") == "value"

    def test_delete(self):
        cache = InMemoryCache()
        cache.set("key", "value")

        assert cache.delete("key") is True
        assert cache.delete("key") is False
        assert cache.get("key") is None

    def test_invalidate_prefix(self):
        """Test that a trailing ':' drops every key with that prefix."""
        cache = InMemoryCache()
        cache.set("emerging-threats:7:page-1", 1)
        cache.set("emerging-threats:7:page-2", 2)
        cache.set("emerging-threats:30:page-1", 3)
        cache.set("category-centroids-v1", 4)

        removed = cache.invalidate("emerging-threats:")

        assert removed == 3
        assert cache.get("emerging-threats:7:page-1") is None
        assert cache.get("category-centroids-v1") == 4

    def test_invalidate_exact_key(self):
        cache = InMemoryCache()
        cache.set("a", 1)
        cache.set("ab", 2)

        assert cache.invalidate("a") == 1
        assert cache.get("ab") == 2

    def test_flush_and_stats(self):
        cache = InMemoryCache()
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")

        stats = cache.stats()
        assert stats == {"hits": 1, "misses": 1, "size": 1}

        cache.flush()
        assert cache.stats()["size"] == 0


class TestGetOrSet:
    """Test single-flight computation."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_computation(self):
        cache = InMemoryCache()
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "result"

        results = await asyncio.gather(*(cache.get_or_set("key", 60, compute) for _ in range(10)))

        assert results == ["result"] * 10
        assert calls == 1

    @pytest.mark.asyncio
    async def test_cached_value_is_reused(self):
        cache = InMemoryCache()
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            return calls

        assert await cache.get_or_set("key", 60, compute) == 1
        assert await cache.get_or_set("key", 60, compute) == 1
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failure_propagates_to_all_waiters_and_is_not_cached(self):
        cache = InMemoryCache()
        calls = 0

        async def failing():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            raise RuntimeError("upstream down")

        results = await asyncio.gather(
            cache.get_or_set("key", 60, failing),
            cache.get_or_set("key", 60, failing),
            return_exceptions=True,
        )

        assert calls == 1
        assert all(isinstance(r, RuntimeError) for r in results)
        assert cache.get("key") is None

        async def succeeding():
            return "recovered"

        assert await cache.get_or_set("key", 60, succeeding) == "recovered"

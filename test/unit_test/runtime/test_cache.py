"""Unit tests for RuntimeCache eviction and loading."""

import asyncio

import pytest

from hivelang_runtime.runtime import RuntimeCache

pytestmark = pytest.mark.asyncio


class TestRuntimeCacheBasics:
    async def test_put_and_get(self):
        cache = RuntimeCache(max_size=2)
        await cache.put("a", 1)
        assert await cache.get("a") == 1
        assert await cache.get("missing") is None
        assert await cache.has("a")
        assert cache.size() == 1

    async def test_remove_and_clear(self):
        cache = RuntimeCache()
        await cache.put("a", 1)
        await cache.put("b", 2)
        assert await cache.remove("a") is True
        assert await cache.remove("a") is False
        await cache.clear()
        assert cache.size() == 0

    async def test_unlimited_when_zero(self):
        cache = RuntimeCache(max_size=0)
        for i in range(250):
            await cache.put(str(i), i)
        assert cache.size() == 250

    @pytest.mark.parametrize("kwargs", [{"max_size": -1}, {"eviction": "random"}])
    async def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            RuntimeCache(**kwargs)

    async def test_properties(self):
        cache = RuntimeCache(max_size=5, eviction="lru")
        assert cache.max_size == 5
        assert cache.eviction == "lru"


class TestFifoEviction:
    async def test_oldest_insertion_is_evicted(self):
        cache = RuntimeCache(max_size=2)
        await cache.put("a", 1)
        await cache.put("b", 2)
        # reading "a" does not protect it under FIFO
        await cache.get("a")
        await cache.put("c", 3)
        assert cache.keys() == ["b", "c"]

    async def test_capacity_plus_one_keeps_the_newest(self):
        cache = RuntimeCache(max_size=100)
        for i in range(101):
            await cache.put(f"k{i}", i)
        assert cache.size() == 100
        assert await cache.get("k0") is None
        assert await cache.get("k100") == 100

    async def test_reput_counts_as_fresh_insertion(self):
        cache = RuntimeCache(max_size=2)
        await cache.put("a", 1)
        await cache.put("b", 2)
        await cache.put("a", 10)
        await cache.put("c", 3)
        assert cache.keys() == ["a", "c"]
        assert await cache.get("a") == 10


class TestLruEviction:
    async def test_recently_read_entry_survives(self):
        cache = RuntimeCache(max_size=2, eviction="lru")
        await cache.put("a", 1)
        await cache.put("b", 2)
        await cache.get("a")
        await cache.put("c", 3)
        assert cache.keys() == ["a", "c"]

    async def test_get_or_load_hit_refreshes(self):
        cache = RuntimeCache(max_size=2, eviction="lru")
        await cache.put("a", 1)
        await cache.put("b", 2)

        async def loader():
            raise AssertionError("should not load")

        assert await cache.get_or_load("a", loader) == 1
        await cache.put("c", 3)
        assert cache.keys() == ["a", "c"]


class TestGetOrLoad:
    async def test_loads_once_for_concurrent_misses(self):
        cache = RuntimeCache()
        calls = []

        async def loader():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "runtime"

        results = await asyncio.gather(*(cache.get_or_load("x", loader) for _ in range(5)))
        assert results == ["runtime"] * 5
        assert len(calls) == 1

    async def test_failed_load_is_not_cached(self):
        cache = RuntimeCache()

        async def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await cache.get_or_load("x", failing)
        assert not await cache.has("x")

    async def test_concurrent_misses_share_failure(self):
        cache = RuntimeCache()
        calls = []

        async def failing():
            calls.append(1)
            await asyncio.sleep(0.01)
            raise RuntimeError("boom")

        results = await asyncio.gather(*(cache.get_or_load("x", failing) for _ in range(3)), return_exceptions=True)
        assert len(calls) == 1
        assert all(isinstance(result, RuntimeError) for result in results)
        assert not await cache.has("x")

    async def test_hit_on_other_key_does_not_wait_for_load(self):
        cache = RuntimeCache()
        await cache.put("fast", "cached")
        release = asyncio.Event()
        started = asyncio.Event()

        async def slow_loader():
            started.set()
            await release.wait()
            return "slow-runtime"

        slow = asyncio.create_task(cache.get_or_load("slow", slow_loader))
        await started.wait()

        async def unexpected():
            raise AssertionError("should not load")

        assert await asyncio.wait_for(cache.get_or_load("fast", unexpected), timeout=0.5) == "cached"
        assert await asyncio.wait_for(cache.get("fast"), timeout=0.5) == "cached"
        assert not slow.done()

        release.set()
        assert await slow == "slow-runtime"
        assert await cache.get("slow") == "slow-runtime"

    async def test_removed_while_loading_is_not_stored(self):
        cache = RuntimeCache()
        release = asyncio.Event()
        started = asyncio.Event()

        async def loader():
            started.set()
            await release.wait()
            return "stale"

        task = asyncio.create_task(cache.get_or_load("x", loader))
        await started.wait()
        await cache.remove("x")
        release.set()
        assert await task == "stale"
        assert not await cache.has("x")

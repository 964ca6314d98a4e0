"""
Tests for TieredCache over the in-memory durable tier.

Time is driven by FakeClock so expiry is deterministic; coroutines run via
asyncio.run.
"""

import asyncio

import pytest

from prpulse.cache import CacheKeys, MemoryCacheStore, TieredCache
from prpulse.errors import CacheStoreError


def make_cache(clock, hot_ttl_seconds=60, default_ttl_seconds=300):
    store = MemoryCacheStore(clock=clock)
    cache = TieredCache(
        store,
        hot_ttl_seconds=hot_ttl_seconds,
        default_ttl_seconds=default_ttl_seconds,
        clock=clock,
    )
    return cache, store


def hot_keys(cache):
    """Keys the hot tier would answer without touching the store."""
    now = cache._clock()
    return {key for key, entry in cache._hot.items() if entry.expires_at > now}


class GatedStore(MemoryCacheStore):
    """Reads the row, then waits on `gate` before returning it."""

    def __init__(self, clock):
        super().__init__(clock=clock)
        self.gate = asyncio.Event()

    async def get(self, key):
        entry = await super().get(key)
        await self.gate.wait()
        return entry


class TestReadWrite:
    def test_set_then_get_round_trip(self, clock):
        cache, store = make_cache(clock)

        async def scenario():
            await cache.set("prs:acme/widgets:open", [{"number": 1}], ttl_seconds=300)
            return await cache.get("prs:acme/widgets:open")

        assert asyncio.run(scenario()) == [{"number": 1}]
        assert "prs:acme/widgets:open" in store
        assert "prs:acme/widgets:open" in hot_keys(cache)

    def test_get_missing_key_returns_none(self, clock):
        cache, _ = make_cache(clock)
        assert asyncio.run(cache.get("nope")) is None

    def test_hot_hit_returns_independent_copy(self, clock):
        """Mutating a returned value never leaks into the cache."""
        cache, _ = make_cache(clock)

        async def scenario():
            await cache.set("k", {"items": [1]})
            first = await cache.get("k")
            first["items"].append(2)
            return await cache.get("k")

        assert asyncio.run(scenario()) == {"items": [1]}

    def test_get_after_ttl_returns_none(self, clock):
        cache, _ = make_cache(clock)

        async def scenario():
            await cache.set("k", "v", ttl_seconds=1)
            clock.advance(1.1)
            return await cache.get("k")

        assert asyncio.run(scenario()) is None

    def test_hot_entry_never_outlives_ceiling(self, clock):
        cache, store = make_cache(clock, hot_ttl_seconds=60)

        async def scenario():
            await cache.set("k", "v", ttl_seconds=600)
            clock.advance(61)
            assert "k" not in hot_keys(cache)
            # durable tier still answers and refreshes the hot tier
            value = await cache.get("k")
            assert "k" in hot_keys(cache)
            return value

        assert asyncio.run(scenario()) == "v"

    def test_non_positive_ttl_rejected(self, clock):
        cache, _ = make_cache(clock)
        with pytest.raises(ValueError):
            asyncio.run(cache.set("k", "v", ttl_seconds=0))

    def test_unserializable_value_rejected_before_write(self, clock):
        cache, store = make_cache(clock)
        with pytest.raises(TypeError):
            asyncio.run(cache.set("k", object()))
        assert len(store) == 0

    def test_delete_removes_from_both_tiers(self, clock):
        cache, store = make_cache(clock)

        async def scenario():
            await cache.set("k", "v")
            await cache.delete("k")
            await cache.delete("never-set")
            return await cache.get("k")

        assert asyncio.run(scenario()) is None
        assert "k" not in store


class TestClear:
    def test_clear_is_scoped_to_pattern(self, clock):
        cache, store = make_cache(clock)

        async def scenario():
            await cache.set(CacheKeys.pull_requests("acme/widgets", "open"), [1])
            await cache.set(CacheKeys.pull_requests("acme/gears", "open"), [2])
            removed = await cache.clear(CacheKeys.repository_pull_requests_pattern("acme/widgets"))
            return (
                removed,
                await cache.get(CacheKeys.pull_requests("acme/widgets", "open")),
                await cache.get(CacheKeys.pull_requests("acme/gears", "open")),
            )

        removed, cleared, kept = asyncio.run(scenario())
        assert removed == 1
        assert cleared is None
        assert kept == [2]

    def test_clear_everything(self, clock):
        cache, store = make_cache(clock)

        async def scenario():
            for i in range(3):
                await cache.set(f"k{i}", i)
            return await cache.clear("*")

        assert asyncio.run(scenario()) == 3
        assert len(store) == 0
        assert cache.stats().entry_count == 0


class TestFailures:
    def test_get_fails_open(self, clock):
        cache, store = make_cache(clock)

        async def scenario():
            await cache.set("k", "v")
            clock.advance(61)
            store.fail_with = "connection refused"
            return await cache.get("k")

        assert asyncio.run(scenario()) is None

    def test_hot_hit_does_not_touch_failing_store(self, clock):
        cache, store = make_cache(clock)

        async def scenario():
            await cache.set("k", "v")
            store.fail_with = "connection refused"
            return await cache.get("k")

        assert asyncio.run(scenario()) == "v"

    def test_set_failure_raises_and_leaves_hot_tier_empty(self, clock):
        cache, store = make_cache(clock)

        async def scenario():
            await cache.set("k", "old")
            store.fail_with = "disk full"
            with pytest.raises(CacheStoreError):
                await cache.set("k", "new")

        asyncio.run(scenario())
        assert "k" not in hot_keys(cache)

    def test_delete_and_clear_failures_raise(self, clock):
        cache, store = make_cache(clock)
        store.fail_with = "timeout"

        with pytest.raises(CacheStoreError):
            asyncio.run(cache.delete("k"))
        with pytest.raises(CacheStoreError):
            asyncio.run(cache.clear("prs:*"))

    def test_clear_failure_still_evicts_hot_entries(self, clock):
        cache, store = make_cache(clock)

        async def scenario():
            await cache.set("prs:acme/widgets:open", [1])
            store.fail_with = "timeout"
            with pytest.raises(CacheStoreError):
                await cache.clear("prs:*")

        asyncio.run(scenario())
        assert "prs:acme/widgets:open" not in hot_keys(cache)


class TestConcurrentReads:
    def test_read_overlapping_delete_does_not_repopulate(self, clock):
        store = GatedStore(clock)
        cache = TieredCache(store, hot_ttl_seconds=60, clock=clock)

        async def scenario():
            await cache.set("k", "v", ttl_seconds=600)
            clock.advance(61)
            reader = asyncio.create_task(cache.get("k"))
            await asyncio.sleep(0)
            await cache.delete("k")
            store.gate.set()
            await reader
            return await cache.get("k")

        assert asyncio.run(scenario()) is None
        assert "k" not in hot_keys(cache)

    def test_read_overlapping_set_keeps_newer_value(self, clock):
        store = GatedStore(clock)
        cache = TieredCache(store, hot_ttl_seconds=60, clock=clock)

        async def scenario():
            await cache.set("k", "old", ttl_seconds=600)
            clock.advance(61)
            reader = asyncio.create_task(cache.get("k"))
            await asyncio.sleep(0)
            await cache.set("k", "new", ttl_seconds=600)
            store.gate.set()
            await reader
            return await cache.get("k")

        assert asyncio.run(scenario()) == "new"


class TestMaintenance:
    def test_sweep_removes_expired_from_both_tiers(self, clock):
        cache, store = make_cache(clock)

        async def scenario():
            await cache.set("short", 1, ttl_seconds=5)
            await cache.set("long", 2, ttl_seconds=500)
            clock.advance(10)
            return await cache.sweep_expired()

        # short: hot + durable
        assert asyncio.run(scenario()) == 2
        assert "short" not in store
        assert "long" in store
        assert "long" in hot_keys(cache)

    def test_purge_hot_expired_leaves_durable_rows(self, clock):
        cache, store = make_cache(clock)

        async def scenario():
            await cache.set("k", 1, ttl_seconds=500)

        asyncio.run(scenario())
        clock.advance(61)
        assert cache.purge_hot_expired() == 1
        assert "k" in store

    def test_stats_counts_hot_entries(self, clock):
        cache, _ = make_cache(clock)

        async def scenario():
            await cache.set("a", "xy")
            await cache.set("b", [1, 2])

        asyncio.run(scenario())
        stats = cache.stats()
        assert stats.entry_count == 2
        assert stats.approximate_byte_size == len('"xy"') + len("[1, 2]")
        assert stats.to_dict() == {"entryCount": 2, "approximateByteSize": 10}


class TestGetOrCompute:
    def test_computes_once(self, clock):
        cache, _ = make_cache(clock)
        calls = []

        def compute():
            calls.append(1)
            return {"fresh": True}

        async def scenario():
            first = await cache.get_or_compute("k", compute)
            second = await cache.get_or_compute("k", compute)
            return first, second

        assert asyncio.run(scenario()) == ({"fresh": True}, {"fresh": True})
        assert len(calls) == 1

    def test_accepts_coroutine_compute(self, clock):
        cache, _ = make_cache(clock)

        async def compute():
            return [1, 2, 3]

        assert asyncio.run(cache.get_or_compute("k", compute)) == [1, 2, 3]

    def test_clear_during_compute_does_not_cache_stale_listing(self, clock):
        cache, store = make_cache(clock)
        key = CacheKeys.pull_requests("acme/widgets", "open")
        gate = asyncio.Event()

        async def compute():
            listing = ["listing read before the webhook persisted"]
            await gate.wait()
            return listing

        async def scenario():
            reader = asyncio.create_task(cache.get_or_compute(key, compute, 300))
            await asyncio.sleep(0)
            await cache.clear(CacheKeys.repository_pull_requests_pattern("acme/widgets"))
            gate.set()
            computed = await reader
            return computed, await cache.get(key)

        computed, cached = asyncio.run(scenario())
        assert computed == ["listing read before the webhook persisted"]
        assert cached is None
        assert key not in store
        assert key not in hot_keys(cache)

    def test_set_during_compute_keeps_newer_value(self, clock):
        cache, _ = make_cache(clock)
        gate = asyncio.Event()

        async def compute():
            await gate.wait()
            return "computed"

        async def scenario():
            reader = asyncio.create_task(cache.get_or_compute("k", compute))
            await asyncio.sleep(0)
            await cache.set("k", "written")
            gate.set()
            await reader
            return await cache.get("k")

        assert asyncio.run(scenario()) == "written"

    def test_failed_fill_still_returns_value(self, clock):
        cache, store = make_cache(clock)
        store.fail_with = "read only"

        assert asyncio.run(cache.get_or_compute("k", lambda: "computed")) == "computed"
        assert "k" not in hot_keys(cache)

"""Tests for scheduled cache maintenance jobs."""

import asyncio
from datetime import datetime, timedelta, timezone

from backend.app.scheduler import build_scheduler
from backend.app.scheduler.jobs import cleanup_durable_cache, sweep_hot_cache
from backend.app.services.pull_request_service import parse_repositories
from prpulse.cache import MemoryCacheStore, TieredCache


class Clock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def make_cache():
    clock = Clock()
    store = MemoryCacheStore(clock=clock)
    return TieredCache(store, hot_ttl_seconds=60, clock=clock), store, clock


def test_sweep_hot_cache_drops_expired_entries():
    cache, store, clock = make_cache()
    asyncio.run(cache.set("k", 1, ttl_seconds=600))
    clock.now += timedelta(seconds=61)

    assert asyncio.run(sweep_hot_cache(cache)) == 1
    assert "k" in store


def test_cleanup_durable_cache_removes_expired_rows():
    cache, store, clock = make_cache()
    asyncio.run(cache.set("k", 1, ttl_seconds=5))
    clock.now += timedelta(seconds=10)

    assert asyncio.run(cleanup_durable_cache(cache)) == 2
    assert len(store) == 0


def test_cleanup_swallows_store_failures():
    cache, store, _ = make_cache()
    store.fail_with = "connection reset"

    assert asyncio.run(cleanup_durable_cache(cache)) == 0


def test_build_scheduler_uses_configured_intervals(settings_factory):
    cache, _, _ = make_cache()
    scheduler = build_scheduler(
        cache, settings_factory(CACHE_HOT_SWEEP_SECONDS=15, CACHE_SWEEP_INTERVAL_SECONDS=120)
    )

    intervals = {job.id: job.trigger.interval for job in scheduler.get_jobs()}
    assert intervals == {
        "sweep_hot_cache": timedelta(seconds=15),
        "cleanup_durable_cache": timedelta(seconds=120),
    }


def test_parse_repositories_dedupes_and_trims():
    assert parse_repositories(" acme/b, acme/a ,acme/b,, ") == ["acme/b", "acme/a"]
    assert parse_repositories("") == []

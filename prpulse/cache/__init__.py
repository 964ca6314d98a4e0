"""
Tiered caching layer.

Provides a hot in-process tier in front of a durable store for:
- Cached pull request listings keyed by repository list and state
- Pattern-based invalidation driven by GitHub webhooks
- Periodic expiry sweeps of both tiers

Usage:
    from prpulse.cache import TieredCache, CacheKeys, create_cache_store

    cache = TieredCache(create_cache_store(settings, db))
    await cache.set(CacheKeys.pull_requests("acme/widgets", "open"), prs, ttl_seconds=300)
    await cache.clear(CacheKeys.repository_pull_requests_pattern("acme/widgets"))
"""

from prpulse.config import Settings
from prpulse.db import DatabaseManager

from .cache_keys import CacheKeys
from .patterns import MATCH_ALL, KeyPattern, compile_pattern
from .redis_store import RedisCacheStore
from .stores import CacheStore, MemoryCacheStore, SqlCacheStore, StoredEntry
from .tiered import CacheStats, HotEntry, TieredCache


def create_cache_store(settings: Settings, database: DatabaseManager) -> CacheStore:
    """Durable tier selected by CACHE_BACKEND."""
    if settings.cache_backend == "redis":
        return RedisCacheStore.from_settings(settings)
    if settings.cache_backend == "memory":
        return MemoryCacheStore()
    return SqlCacheStore(database)


__all__ = [
    "TieredCache",
    "CacheStats",
    "HotEntry",
    "CacheStore",
    "StoredEntry",
    "SqlCacheStore",
    "MemoryCacheStore",
    "RedisCacheStore",
    "CacheKeys",
    "KeyPattern",
    "compile_pattern",
    "MATCH_ALL",
    "create_cache_store",
]

"""
Background job functions for the internal scheduler.

Includes:
- Hot-tier expiry sweep
- Durable cache cleanup

Each job logs and swallows its own failure so one bad cycle never cancels
the next.
"""

from prpulse.cache import TieredCache
from prpulse.errors import CacheStoreError
from prpulse.logging import get_logger

logger = get_logger("backend.scheduler.jobs")


async def sweep_hot_cache(cache: TieredCache) -> int:
    """Drop expired entries from the in-process tier."""
    try:
        removed = cache.purge_hot_expired()
    except Exception as e:
        logger.error("hot_cache_sweep_failed", error=str(e), error_type=type(e).__name__)
        return 0
    if removed:
        logger.debug("hot_cache_swept", removed=removed)
    return removed


async def cleanup_durable_cache(cache: TieredCache) -> int:
    """Delete expired rows from both tiers."""
    try:
        removed = await cache.sweep_expired()
    except CacheStoreError as e:
        logger.warning("durable_cache_cleanup_failed", operation=e.operation, error=e.detail)
        return 0
    except Exception as e:
        logger.error("durable_cache_cleanup_failed", error=str(e), error_type=type(e).__name__)
        return 0
    if removed:
        logger.info("durable_cache_cleaned", removed=removed)
    return removed

"""
Cache administration endpoints.
"""

from fastapi import APIRouter, Depends, Query

from prpulse.cache import MATCH_ALL, TieredCache
from prpulse.logging import get_logger

from ..dependencies import get_cache
from ..schemas import CacheClearResponse, CacheStatsResponse

router = APIRouter(prefix="/cache", tags=["cache"])

logger = get_logger("api.cache")


@router.delete("", response_model=CacheClearResponse)
async def clear_cache(
    pattern: str = Query(default=MATCH_ALL, min_length=1, max_length=512),
    cache: TieredCache = Depends(get_cache),
):
    """Remove every entry matching pattern (default: everything) from both tiers."""
    cleared = await cache.clear(pattern)
    logger.info("cache_cleared_via_api", pattern=pattern, cleared=cleared)
    return CacheClearResponse(pattern=pattern, cleared=cleared)


@router.get("/stats", response_model=CacheStatsResponse)
def cache_stats(cache: TieredCache = Depends(get_cache)):
    stats = cache.stats()
    return CacheStatsResponse(
        entry_count=stats.entry_count,
        approximate_byte_size=stats.approximate_byte_size,
    )

"""
Cached pull request listings.
"""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from prpulse.cache import TieredCache
from prpulse.config import Settings
from prpulse.db import DatabaseManager

from ..dependencies import get_app_settings, get_cache, get_database
from ..schemas import CachedPullRequestsResponse
from ..services import pull_request_service

router = APIRouter(prefix="/pull-requests", tags=["pull-requests"])


@router.get("/cached", response_model=CachedPullRequestsResponse)
async def cached_pull_requests(
    repositories: str = Query(..., description="Comma-separated owner/name list"),
    state: Literal["open", "closed", "all"] = Query(default="all"),
    cache: TieredCache = Depends(get_cache),
    database: DatabaseManager = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
):
    names = pull_request_service.parse_repositories(repositories)
    if not names:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="repositories must name at least one owner/name",
        )
    pull_requests = await pull_request_service.get_cached_pull_requests(
        cache, database, names, state, ttl_seconds=settings.cache_default_ttl_seconds
    )
    return CachedPullRequestsResponse(repositories=names, state=state, pull_requests=pull_requests)

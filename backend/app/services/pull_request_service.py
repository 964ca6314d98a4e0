"""
Cached pull request listings.

Listings are served through the TieredCache under `prs:<repositories>:<state>`,
the key family webhook invalidation clears with `prs:*<owner/name>*`.
"""

from typing import Any

from prpulse.cache import CacheKeys, TieredCache
from prpulse.db import DatabaseManager
from prpulse.logging import get_logger
from prpulse.repositories import PullRequestRepository

logger = get_logger("api.pull_requests")

STATES = ("open", "closed", "all")


def parse_repositories(raw: str | None) -> list[str]:
    """Split `a/b,c/d`, dropping blanks and duplicates while keeping order."""
    if not raw:
        return []
    seen: dict[str, None] = {}
    for part in raw.split(","):
        name = part.strip()
        if name:
            seen.setdefault(name, None)
    return list(seen)


async def get_cached_pull_requests(
    cache: TieredCache,
    database: DatabaseManager,
    repositories: list[str],
    state: str = "all",
    ttl_seconds: int = CacheKeys.TTL_DEFAULT,
) -> list[dict[str, Any]]:
    """Listing from cache, falling back to the pull_requests table on a miss."""
    key = CacheKeys.pull_requests(",".join(repositories), state)

    async def compute() -> list[dict[str, Any]]:
        logger.debug("pull_requests_cache_miss", key=key)
        return await database.run(
            lambda session: [
                record.data
                for record in PullRequestRepository(session).list_for_repositories(
                    repositories, state
                )
            ]
        )

    return await cache.get_or_compute(key, compute, ttl_seconds)

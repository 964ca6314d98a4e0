"""
Durable cache tier backends.

A CacheStore holds opaque JSON text with an absolute expiry. Every backend
raises CacheStoreError in place of its driver's own exceptions so TieredCache
can apply one failure policy regardless of where the durable tier lives.

Backends:
- SqlCacheStore: the `cache` table through SQLAlchemy (default)
- MemoryCacheStore: process-local dict, for tests and single-process dev
- RedisCacheStore: see redis_store.py
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from prpulse.db import DatabaseManager
from prpulse.errors import CacheStoreError
from prpulse.models import CacheEntry
from prpulse.repositories.base import BaseRepository
from prpulse.timeutils import as_aware_utc, to_naive_utc, utcnow

from .patterns import LIKE_ESCAPE, KeyPattern, compile_pattern

T = TypeVar("T")

# SQLite caps bound parameters per statement
DELETE_CHUNK_SIZE = 500


@dataclass(frozen=True)
class StoredEntry:
    """A durable row as seen by the cache layer. `expires_at` is aware UTC."""

    data: str
    expires_at: datetime


class CacheStore(ABC):
    """Durable key/value contract consumed by TieredCache."""

    name: str = "store"

    @abstractmethod
    async def get(self, key: str) -> Optional[StoredEntry]:
        """Return the live entry for key, or None."""

    @abstractmethod
    async def upsert(self, key: str, data: str, expires_at: datetime) -> None:
        """Insert or replace key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key; absent keys are not an error."""

    @abstractmethod
    async def delete_matching(self, pattern: KeyPattern) -> int:
        """Remove every key the pattern matches; returns rows removed."""

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Remove every entry whose expiry is at or before now."""

    def close(self) -> None:
        """Release backend resources."""


# =============================================================================
# SQL
# =============================================================================


class CacheEntryRepository(BaseRepository[CacheEntry]):
    """Queries over the `cache` table. Datetimes in and out are aware UTC."""

    model = CacheEntry

    def get_live(self, key: str, now: datetime) -> Optional[CacheEntry]:
        entry = self.get_by_id(key)
        if entry is None or entry.expires_at <= to_naive_utc(now):
            return None
        return entry

    def upsert(self, key: str, data: str, expires_at: datetime) -> CacheEntry:
        entry, _ = self._upsert(key, {"data": data, "expires_at": to_naive_utc(expires_at)})
        return entry

    def delete_key(self, key: str) -> bool:
        return self.delete(key)

    def matching_keys(self, pattern: KeyPattern) -> list[str]:
        """
        Keys matched by pattern.

        LIKE narrows the scan; the regex confirms each candidate because
        SQLite's LIKE is case-insensitive and the predicate is not.
        """
        query = select(CacheEntry.key)
        if not pattern.matches_everything:
            query = query.where(CacheEntry.key.like(pattern.to_like(), escape=LIKE_ESCAPE))
        candidates = self.session.execute(query).scalars().all()
        return [key for key in candidates if pattern.matches(key)]

    def delete_matching(self, pattern: KeyPattern) -> int:
        if pattern.matches_everything:
            result = self.session.execute(delete(CacheEntry))
            return result.rowcount or 0

        keys = self.matching_keys(pattern)
        removed = 0
        for start in range(0, len(keys), DELETE_CHUNK_SIZE):
            chunk = keys[start : start + DELETE_CHUNK_SIZE]
            result = self.session.execute(delete(CacheEntry).where(CacheEntry.key.in_(chunk)))
            removed += result.rowcount or 0
        return removed

    def delete_expired(self, now: datetime) -> int:
        result = self.session.execute(
            delete(CacheEntry).where(CacheEntry.expires_at <= to_naive_utc(now))
        )
        return result.rowcount or 0


class SqlCacheStore(CacheStore):
    """
    Durable tier backed by the SQLAlchemy `cache` table.

    Each call runs one short session on the threadpool via DatabaseManager.run,
    so the event loop only suspends for the SQL round trip.
    """

    name = "sql"

    def __init__(self, database: DatabaseManager):
        self.database = database

    async def _run(self, operation: str, work: Callable[[CacheEntryRepository], T]) -> T:
        try:
            return await self.database.run(lambda session: work(CacheEntryRepository(session)))
        except SQLAlchemyError as e:
            raise CacheStoreError(operation, str(e)) from e

    async def get(self, key: str) -> Optional[StoredEntry]:
        def _get(repo: CacheEntryRepository) -> Optional[StoredEntry]:
            entry = repo.get_live(key, utcnow())
            if entry is None:
                return None
            return StoredEntry(data=entry.data, expires_at=as_aware_utc(entry.expires_at))

        return await self._run("get", _get)

    async def upsert(self, key: str, data: str, expires_at: datetime) -> None:
        await self._run("upsert", lambda repo: repo.upsert(key, data, expires_at))

    async def delete(self, key: str) -> None:
        await self._run("delete", lambda repo: repo.delete_key(key))

    async def delete_matching(self, pattern: KeyPattern) -> int:
        return await self._run("delete_matching", lambda repo: repo.delete_matching(pattern))

    async def delete_expired(self, now: datetime) -> int:
        return await self._run("delete_expired", lambda repo: repo.delete_expired(now))


# =============================================================================
# Memory
# =============================================================================


class MemoryCacheStore(CacheStore):
    """
    Process-local durable tier.

    Only suitable for a single process: invalidations do not reach other
    instances. `fail_with` makes every call raise, for exercising failure paths.
    """

    name = "memory"

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utcnow
        self._rows: dict[str, StoredEntry] = {}
        self.fail_with: Optional[str] = None

    def _check(self, operation: str) -> None:
        if self.fail_with is not None:
            raise CacheStoreError(operation, self.fail_with)

    async def get(self, key: str) -> Optional[StoredEntry]:
        self._check("get")
        entry = self._rows.get(key)
        if entry is None or entry.expires_at <= self._clock():
            return None
        return entry

    async def upsert(self, key: str, data: str, expires_at: datetime) -> None:
        self._check("upsert")
        self._rows[key] = StoredEntry(data=data, expires_at=as_aware_utc(expires_at))

    async def delete(self, key: str) -> None:
        self._check("delete")
        self._rows.pop(key, None)

    async def delete_matching(self, pattern: KeyPattern) -> int:
        self._check("delete_matching")
        pattern = compile_pattern(pattern)
        doomed = [key for key in self._rows if pattern.matches(key)]
        for key in doomed:
            del self._rows[key]
        return len(doomed)

    async def delete_expired(self, now: datetime) -> int:
        self._check("delete_expired")
        doomed = [key for key, entry in self._rows.items() if entry.expires_at <= now]
        for key in doomed:
            del self._rows[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, key: str) -> bool:
        return key in self._rows


__all__ = [
    "CacheStore",
    "StoredEntry",
    "CacheEntryRepository",
    "SqlCacheStore",
    "MemoryCacheStore",
]

"""
Two-tier cache: a process-local hot map in front of a durable CacheStore.

Writes go through to the durable tier before the hot tier is refreshed, so
the hot tier only ever holds values the durable tier has accepted. Hot
entries live for at most `hot_ttl_seconds` regardless of the durable TTL,
which bounds how long a missed invalidation can be served from memory.

Failure policy (CacheStoreError from the durable tier):
- get: treated as a miss, the caller recomputes
- set / delete / clear / sweep_expired: re-raised to the caller

Usage:
    cache = TieredCache(SqlCacheStore(db), hot_ttl_seconds=60)

    await cache.set("prs:acme/widgets:open", payload, ttl_seconds=300)
    payload = await cache.get("prs:acme/widgets:open")
    removed = await cache.clear("prs:*acme/widgets*")
"""

import inspect
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional, Union

from prpulse.errors import CacheStoreError
from prpulse.logging import get_logger
from prpulse.timeutils import utcnow

from .patterns import KeyPattern, compile_pattern
from .stores import CacheStore

logger = get_logger("cache")

DEFAULT_TTL_SECONDS = 300
HOT_TTL_CEILING_SECONDS = 60


@dataclass
class HotEntry:
    """Serialized value plus absolute expiry; decoded on every hit."""

    data: str
    expires_at: datetime

    @property
    def size(self) -> int:
        return len(self.data.encode("utf-8"))


@dataclass(frozen=True)
class CacheStats:
    entry_count: int
    approximate_byte_size: int

    def to_dict(self) -> dict[str, int]:
        return {
            "entryCount": self.entry_count,
            "approximateByteSize": self.approximate_byte_size,
        }


class TieredCache:
    """
    Write-through cache over a durable CacheStore.

    Keys with a durable read or a get_or_compute fill in flight carry a
    generation number. Any write, delete or clear touching such a key bumps
    it, and the read or fill only installs its result if the generation it
    started with is still current. Hot-tier mutations never span an await.
    """

    def __init__(
        self,
        store: CacheStore,
        hot_ttl_seconds: int = HOT_TTL_CEILING_SECONDS,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        if hot_ttl_seconds < 1:
            raise ValueError("hot_ttl_seconds must be at least 1")
        self.store = store
        self.hot_ttl = timedelta(seconds=hot_ttl_seconds)
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._hot: dict[str, HotEntry] = {}
        self._pending_reads: dict[str, int] = {}
        self._generations: dict[str, int] = {}

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None. Durable failures read as a miss."""
        now = self._clock()
        entry = self._hot.get(key)
        if entry is not None:
            if entry.expires_at > now:
                return json.loads(entry.data)
            del self._hot[key]

        generation = self._begin_read(key)
        try:
            stored = await self.store.get(key)
        except CacheStoreError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None
        finally:
            superseded = self._generations.get(key, 0) != generation
            self._finish_read(key)

        if stored is None:
            return None

        now = self._clock()
        if stored.expires_at <= now:
            return None

        try:
            value = json.loads(stored.data)
        except ValueError as e:
            logger.warning("cache_entry_undecodable", key=key, error=str(e))
            return None

        # A set/delete/clear ran while we were reading; its result wins
        if not superseded and key not in self._hot:
            self._hot[key] = HotEntry(
                data=stored.data,
                expires_at=min(stored.expires_at, now + self.hot_ttl),
            )
        return value

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Union[Any, Awaitable[Any]]],
        ttl_seconds: Optional[int] = None,
    ) -> Any:
        """
        Get from cache or compute and cache the result.

        A failed durable write is logged and the computed value still returned.
        If the key is set, deleted or cleared while compute runs, the result
        is returned but not cached.
        """
        value = await self.get(key)
        if value is not None:
            return value

        generation = self._begin_read(key)
        try:
            value = compute()
            if inspect.isawaitable(value):
                value = await value
        finally:
            superseded = self._generations.get(key, 0) != generation
            self._finish_read(key)

        if superseded:
            logger.info("cache_fill_skipped", key=key, reason="invalidated during compute")
        elif value is not None:
            try:
                await self.set(key, value, ttl_seconds)
            except CacheStoreError as e:
                logger.warning("cache_fill_failed", key=key, error=str(e))
        return value

    # =========================================================================
    # Writes
    # =========================================================================

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """
        Write value to the durable tier, then the hot tier.

        Raises CacheStoreError if the durable write fails; the hot tier is left
        without an entry for key in that case.
        """
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")
        data = json.dumps(value)

        self._evict(key)
        now = self._clock()
        expires_at = now + timedelta(seconds=ttl)
        await self.store.upsert(key, data, expires_at)

        self._bump(key)
        self._hot[key] = HotEntry(
            data=data,
            expires_at=min(expires_at, self._clock() + self.hot_ttl),
        )

    async def delete(self, key: str) -> None:
        """Remove key from both tiers. Missing keys are a no-op."""
        self._evict(key)
        await self.store.delete(key)
        self._evict(key)

    async def clear(self, pattern: Union[str, KeyPattern]) -> int:
        """
        Remove every key matching pattern from both tiers.

        Returns the number of durable entries removed.
        """
        compiled = compile_pattern(pattern)
        hot_removed = self._evict_matching(compiled)
        durable_removed = await self.store.delete_matching(compiled)
        hot_removed += self._evict_matching(compiled)
        logger.info(
            "cache_clear",
            pattern=compiled.raw,
            hot_removed=hot_removed,
            durable_removed=durable_removed,
        )
        return durable_removed

    # =========================================================================
    # Expiry
    # =========================================================================

    def purge_hot_expired(self) -> int:
        """Drop expired hot entries. Synchronous; never suspends."""
        now = self._clock()
        expired = [key for key, entry in self._hot.items() if entry.expires_at <= now]
        for key in expired:
            del self._hot[key]
        return len(expired)

    async def sweep_expired(self) -> int:
        """Remove expired entries from both tiers; returns total removed."""
        hot_removed = self.purge_hot_expired()
        durable_removed = await self.store.delete_expired(self._clock())
        if hot_removed or durable_removed:
            logger.debug(
                "cache_sweep",
                hot_removed=hot_removed,
                durable_removed=durable_removed,
            )
        return hot_removed + durable_removed

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def stats(self) -> CacheStats:
        """Hot-tier entry count and serialized size. Never raises."""
        try:
            entries = list(self._hot.values())
            return CacheStats(
                entry_count=len(entries),
                approximate_byte_size=sum(entry.size for entry in entries),
            )
        except Exception as e:
            logger.warning("cache_stats_failed", error=str(e))
            return CacheStats(entry_count=0, approximate_byte_size=0)

    # =========================================================================
    # Internals
    # =========================================================================

    def _begin_read(self, key: str) -> int:
        """Mark a read or compute of key in flight; returns its generation."""
        self._pending_reads[key] = self._pending_reads.get(key, 0) + 1
        return self._generations.get(key, 0)

    def _bump(self, key: str) -> None:
        if key in self._pending_reads:
            self._generations[key] = self._generations.get(key, 0) + 1

    def _evict(self, key: str) -> None:
        self._hot.pop(key, None)
        self._bump(key)

    def _evict_matching(self, pattern: KeyPattern) -> int:
        doomed = [key for key in self._hot if pattern.matches(key)]
        for key in doomed:
            del self._hot[key]
        for key in self._pending_reads:
            if pattern.matches(key):
                self._bump(key)
        return len(doomed)

    def _finish_read(self, key: str) -> None:
        remaining = self._pending_reads.get(key, 1) - 1
        if remaining > 0:
            self._pending_reads[key] = remaining
        else:
            self._pending_reads.pop(key, None)
            self._generations.pop(key, None)

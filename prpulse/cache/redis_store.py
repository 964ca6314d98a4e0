"""
Redis durable cache tier.

Provides a CacheStore over redis-py with:
- Connection pooling (max 50 connections)
- JSON envelopes carrying the absolute expiry next to the payload
- Native key expiry, so the periodic durable sweep has nothing to do
- SCAN-based pattern invalidation (never KEYS, which blocks the server)

redis-py is synchronous here; each call runs on the threadpool so the event
loop only suspends for the round trip.
"""

import json
import math
from datetime import datetime
from typing import Optional

import redis
from redis.exceptions import RedisError
from starlette.concurrency import run_in_threadpool

from prpulse.config import Settings, get_settings
from prpulse.errors import CacheStoreError
from prpulse.logging import get_logger
from prpulse.timeutils import utcnow

from .patterns import KeyPattern, compile_pattern
from .stores import CacheStore, StoredEntry

logger = get_logger("cache")

KEY_NAMESPACE = "prpulse:cache:"
SCAN_BATCH = 500


class RedisCacheStore(CacheStore):
    """
    Durable tier stored in Redis.

    Usage:
        store = RedisCacheStore.from_settings()
        cache = TieredCache(store)

    Keys are namespaced so `clear("*")` only touches cache entries, not other
    data sharing the Redis database.
    """

    name = "redis"

    def __init__(self, client: "redis.Redis", namespace: str = KEY_NAMESPACE):
        self.client = client
        self.namespace = namespace

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RedisCacheStore":
        settings = settings or get_settings()
        pool = redis.ConnectionPool(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password,
            max_connections=50,
            socket_timeout=5,
            socket_connect_timeout=5,
            decode_responses=False,  # We handle encoding ourselves
        )
        logger.info("redis_store_configured", host=settings.redis_host, port=settings.redis_port)
        return cls(redis.Redis(connection_pool=pool))

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    async def _call(self, operation: str, fn, *args, **kwargs):
        try:
            return await run_in_threadpool(fn, *args, **kwargs)
        except RedisError as e:
            raise CacheStoreError(operation, str(e)) from e

    # =========================================================================
    # CacheStore
    # =========================================================================

    async def get(self, key: str) -> Optional[StoredEntry]:
        raw = await self._call("get", self.client.get, self._key(key))
        if raw is None:
            return None
        try:
            envelope = json.loads(raw.decode("utf-8") if isinstance(raw, bytes) else raw)
            expires_at = datetime.fromisoformat(envelope["expires_at"])
            data = envelope["data"]
        except (ValueError, KeyError, TypeError) as e:
            # Unreadable rows are misses; the next set overwrites them
            logger.debug("redis_envelope_invalid", key=key, error=str(e))
            return None
        if expires_at <= utcnow():
            return None
        return StoredEntry(data=data, expires_at=expires_at)

    async def upsert(self, key: str, data: str, expires_at: datetime) -> None:
        ttl = max(1, math.ceil((expires_at - utcnow()).total_seconds()))
        envelope = json.dumps({"data": data, "expires_at": expires_at.isoformat()})
        await self._call("upsert", self.client.setex, self._key(key), ttl, envelope.encode("utf-8"))

    async def delete(self, key: str) -> None:
        await self._call("delete", self.client.delete, self._key(key))

    def _delete_matching_sync(self, pattern: KeyPattern) -> int:
        glob = self.namespace + pattern.to_glob()
        removed = 0
        batch: list[bytes] = []
        for raw_key in self.client.scan_iter(match=glob, count=SCAN_BATCH):
            name = raw_key.decode("utf-8") if isinstance(raw_key, bytes) else raw_key
            if not pattern.matches(name[len(self.namespace) :]):
                continue
            batch.append(raw_key)
            if len(batch) >= SCAN_BATCH:
                removed += int(self.client.delete(*batch) or 0)
                batch = []
        if batch:
            removed += int(self.client.delete(*batch) or 0)
        return removed

    async def delete_matching(self, pattern: KeyPattern) -> int:
        return await self._call(
            "delete_matching", self._delete_matching_sync, compile_pattern(pattern)
        )

    async def delete_expired(self, now: datetime) -> int:
        # Redis expires keys itself
        return 0

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError as e:
            logger.warning("redis_ping_failed", error=str(e))
            return False

    def close(self) -> None:
        self.client.close()


__all__ = ["RedisCacheStore", "KEY_NAMESPACE"]

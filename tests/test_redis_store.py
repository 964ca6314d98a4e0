"""Tests for the Redis durable tier against a mocked client."""

import asyncio
import json
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from prpulse.cache import KeyPattern, RedisCacheStore
from prpulse.cache.redis_store import KEY_NAMESPACE
from prpulse.errors import CacheStoreError
from prpulse.timeutils import utcnow


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def store(client):
    return RedisCacheStore(client)


def envelope(data: str, expires_at) -> bytes:
    return json.dumps({"data": data, "expires_at": expires_at.isoformat()}).encode("utf-8")


def test_upsert_writes_namespaced_envelope_with_ttl(store, client):
    expires_at = utcnow() + timedelta(seconds=30)

    asyncio.run(store.upsert("prs:acme/widgets:open", "[1]", expires_at))

    key, ttl, raw = client.setex.call_args.args
    assert key == f"{KEY_NAMESPACE}prs:acme/widgets:open"
    assert 29 <= ttl <= 30
    assert json.loads(raw)["data"] == "[1]"


def test_get_decodes_envelope(store, client):
    expires_at = utcnow() + timedelta(seconds=30)
    client.get.return_value = envelope('{"a": 1}', expires_at)

    entry = asyncio.run(store.get("k"))

    client.get.assert_called_once_with(f"{KEY_NAMESPACE}k")
    assert entry.data == '{"a": 1}'
    assert entry.expires_at == expires_at


def test_get_treats_expired_and_garbage_as_miss(store, client):
    client.get.return_value = envelope("1", utcnow() - timedelta(seconds=1))
    assert asyncio.run(store.get("k")) is None

    client.get.return_value = b"not json"
    assert asyncio.run(store.get("k")) is None


def test_delete_matching_confirms_scan_results(store, client):
    """SCAN globs are only a prefilter; the pattern has the final say."""
    client.scan_iter.return_value = iter(
        [
            f"{KEY_NAMESPACE}prs:acme/widgets:open".encode(),
            f"{KEY_NAMESPACE}prs:acme/widgets-v2:open".encode(),
            f"{KEY_NAMESPACE}prs:other:open".encode(),
        ]
    )
    client.delete.return_value = 2

    removed = asyncio.run(store.delete_matching(KeyPattern("prs:*acme/widgets*")))

    assert removed == 2
    assert client.scan_iter.call_args.kwargs["match"] == f"{KEY_NAMESPACE}prs:*acme/widgets*"
    assert client.delete.call_args.args == (
        f"{KEY_NAMESPACE}prs:acme/widgets:open".encode(),
        f"{KEY_NAMESPACE}prs:acme/widgets-v2:open".encode(),
    )


def test_delete_matching_with_no_keys_skips_delete(store, client):
    client.scan_iter.return_value = iter([])

    assert asyncio.run(store.delete_matching(KeyPattern("prs:*"))) == 0
    client.delete.assert_not_called()


def test_redis_errors_become_cache_store_errors(store, client):
    client.setex.side_effect = RedisConnectionError("connection refused")

    with pytest.raises(CacheStoreError) as exc_info:
        asyncio.run(store.upsert("k", "1", utcnow() + timedelta(seconds=5)))

    assert exc_info.value.operation == "upsert"


def test_delete_expired_is_a_no_op(store, client):
    assert asyncio.run(store.delete_expired(utcnow())) == 0


def test_ping_reports_failure(store, client):
    client.ping.side_effect = RedisConnectionError("down")
    assert store.ping() is False

"""
FastAPI dependency injection module.

The cache, hub and webhook router are built once in the startup hook and
kept on `app.state`; these dependencies hand them to route handlers. Works
for both HTTP and WebSocket routes.
"""

from starlette.requests import HTTPConnection

from prpulse.cache import TieredCache
from prpulse.config import Settings
from prpulse.db import DatabaseManager
from prpulse.realtime import RealtimeHub
from prpulse.webhooks import WebhookRouter


def _require(connection: HTTPConnection, name: str):
    value = getattr(connection.app.state, name, None)
    if value is None:
        raise RuntimeError(f"app.state.{name} is not initialized; did startup run?")
    return value


def get_app_settings(connection: HTTPConnection) -> Settings:
    return _require(connection, "settings")


def get_database(connection: HTTPConnection) -> DatabaseManager:
    return _require(connection, "database")


def get_cache(connection: HTTPConnection) -> TieredCache:
    return _require(connection, "cache")


def get_hub(connection: HTTPConnection) -> RealtimeHub:
    return _require(connection, "hub")


def get_webhook_router(connection: HTTPConnection) -> WebhookRouter:
    return _require(connection, "webhook_router")


__all__ = [
    "get_app_settings",
    "get_database",
    "get_cache",
    "get_hub",
    "get_webhook_router",
]

"""
FastAPI application entry point.

Builds the cache, realtime hub and webhook router once at startup and keeps
them on `app.state`; routers reach them through backend.app.dependencies.
"""

import time
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from prpulse.cache import RedisCacheStore, TieredCache, create_cache_store
from prpulse.db import DatabaseManager, db
from prpulse.logging import RequestLoggingMiddleware, configure_logging, get_logger
from prpulse.realtime import RealtimeHub
from prpulse.security import SecurityConfigError, validate_security_config
from prpulse.webhooks import SqlWebhookPersistence, WebhookRouter, WebhookValidator

from .config import Settings, get_settings
from .error_handlers import register_exception_handlers
from .middleware.request_id import RequestIDMiddleware
from .routers import cache as cache_router
from .routers import pull_requests as pull_requests_router
from .routers import realtime as realtime_router
from .routers import webhooks as webhooks_router
from .scheduler import build_scheduler, shutdown_scheduler, start_scheduler
from .schemas import HealthResponse


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to limit request body size."""

    def __init__(self, app, max_size_mb: int = 25):
        super().__init__(app)
        self.max_size = max_size_mb * 1024 * 1024
        self.max_size_mb = max_size_mb

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                if int(content_length) > self.max_size:
                    return JSONResponse(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        content={"error": f"Maximum request size is {self.max_size_mb}MB"},
                    )
            except ValueError:
                pass

        return await call_next(request)


logger = get_logger("api")


def validate_security_on_startup(settings: Settings) -> None:
    """Validate configuration before accepting deliveries. Raises on fatal errors."""
    try:
        result = validate_security_config(
            webhook_secret=settings.github_webhook_secret,
            cors_origins=settings.cors_allowed_origins,
            database_url=settings.database_url,
            production=settings.is_production,
        )
    except SecurityConfigError as e:
        for error in e.errors:
            logger.error("security_config_error", error=error)
        raise

    for warning in result.warnings:
        logger.warning("security_warning", message=warning)

    config_errors, config_warnings = settings.validate_production_config()
    for warning in config_warnings:
        logger.warning("config_warning", message=warning)
    if config_errors:
        raise SecurityConfigError(config_errors)

    logger.info("security_validation_passed")


def build_services(app: FastAPI, settings: Settings, database: DatabaseManager) -> None:
    """Construct the cache, hub and webhook router and attach them to app.state."""
    database.initialize(settings.database_url)
    if settings.database_url.startswith("sqlite"):
        # SQLite deployments are single-host dev setups; Postgres uses alembic
        database.create_all_tables()
    logger.info("database_initialized")

    store = create_cache_store(settings, database)
    cache = TieredCache(
        store,
        hot_ttl_seconds=settings.cache_hot_ttl_seconds,
        default_ttl_seconds=settings.cache_default_ttl_seconds,
    )
    hub = RealtimeHub(queue_size=settings.realtime_queue_size)
    webhook_router = WebhookRouter(
        WebhookValidator(settings.webhook_secret_bytes),
        cache,
        hub,
        SqlWebhookPersistence(database),
    )

    app.state.settings = settings
    app.state.database = database
    app.state.cache = cache
    app.state.hub = hub
    app.state.webhook_router = webhook_router
    logger.info("cache_initialized", backend=store.name, hot_ttl_seconds=settings.cache_hot_ttl_seconds)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[DatabaseManager] = None,
) -> FastAPI:
    settings = settings or get_settings()
    database = database or db
    configure_logging(level="DEBUG" if settings.debug else "INFO")

    app = FastAPI(title=settings.app_name, debug=settings.debug)
    app.state.settings = settings

    app.add_middleware(RequestSizeLimitMiddleware, max_size_mb=settings.max_request_size_mb)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "X-Requested-With"],
    )

    # Request ID middleware (for tracing)
    app.add_middleware(RequestIDMiddleware)

    # Structured request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        """Initialize services on startup."""
        logger.info("app_startup", app_name=settings.app_name)
        app.state.started_at = time.monotonic()

        validate_security_on_startup(settings)
        build_services(app, settings, database)

        app.state.scheduler = None
        if settings.enable_scheduler:
            app.state.scheduler = build_scheduler(app.state.cache, settings)
            start_scheduler(app.state.scheduler)

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown."""
        logger.info("app_shutdown")

        scheduler = getattr(app.state, "scheduler", None)
        if scheduler is not None:
            shutdown_scheduler(scheduler)

        hub = getattr(app.state, "hub", None)
        if hub is not None:
            hub.close()

        cache = getattr(app.state, "cache", None)
        if cache is not None:
            cache.store.close()

        database.reset()

    @app.get("/health", tags=["health"], response_model=HealthResponse)
    def health_check(request: Request):
        """Liveness probe with realtime and cache diagnostics."""
        state = request.app.state
        return HealthResponse(
            uptime_seconds=round(time.monotonic() - state.started_at, 3),
            connected_clients=state.hub.connected_clients_count(),
            cache_stats=state.cache.stats().to_dict(),
        )

    @app.get("/health/ready", tags=["health"])
    def readiness_check(request: Request):
        """
        Readiness check endpoint.

        Returns 200 if the database (and Redis, when it backs the cache) is
        reachable, 503 otherwise.
        """
        state = request.app.state
        checks = {"database": state.database.health_check()["healthy"]}

        store = state.cache.store
        if isinstance(store, RedisCacheStore):
            checks["cache"] = store.ping()

        if not all(checks.values()):
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "not_ready", "checks": checks},
            )
        return {"status": "ready", "checks": checks}

    app.include_router(webhooks_router.router, prefix=settings.api_prefix)
    app.include_router(cache_router.router, prefix=settings.api_prefix)
    app.include_router(pull_requests_router.router, prefix=settings.api_prefix)
    app.include_router(realtime_router.router)

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn (`prpulse-serve`)."""
    settings = get_settings()
    uvicorn.run(
        "backend.app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level="debug" if settings.debug else "info",
    )

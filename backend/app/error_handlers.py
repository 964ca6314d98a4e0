"""
Custom exception handlers for FastAPI.

Every error body has the shape {"error": <message>}, the shape GitHub and the
dashboard client expect.

Security:
- Request IDs are logged server-side for tracing but NOT exposed to clients
- Generic error messages for 500 errors to prevent information disclosure
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from prpulse.errors import CacheStoreError
from prpulse.logging import get_logger

logger = get_logger("backend.errors")


def _get_request_id() -> str:
    """Current request ID from log context. Server-side logging only."""
    return structlog.contextvars.get_contextvars().get("request_id", "-")


def _response_payload(message: str) -> dict:
    return {"error": message}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(
            "http_exception",
            detail=exc.detail,
            status_code=exc.status_code,
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_response_payload(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=422,
            content={
                **_response_payload("Validation error"),
                "errors": [
                    {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
                    for error in exc.errors()
                ],
            },
        )

    @app.exception_handler(CacheStoreError)
    async def cache_store_exception_handler(request: Request, exc: CacheStoreError):
        logger.error(
            "cache_store_unavailable",
            operation=exc.operation,
            error=exc.detail,
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=503,
            content=_response_payload("Cache store unavailable"),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        # Log full details server-side (including request_id for tracing)
        logger.exception(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=500,
            content=_response_payload("Internal server error"),
        )

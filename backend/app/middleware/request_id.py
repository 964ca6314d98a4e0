"""
Middleware that injects a request ID into every incoming request.

GitHub deliveries carry their own X-GitHub-Delivery id; when present it is
reused as the request id so server logs line up with GitHub's delivery log.
"""

import uuid

from fastapi import Request

from prpulse.constants import DELIVERY_HEADER
from prpulse.logging import bind_context, clear_context


class RequestIDMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get(DELIVERY_HEADER)
            or str(uuid.uuid4())
        )
        scope.setdefault("state", {})["request_id"] = request_id

        clear_context()
        bind_context(request_id=request_id)

        async def send_wrapper(response):
            if response["type"] == "http.response.start":
                headers = response.setdefault("headers", [])
                headers.append((b"x-request-id", request_id.encode()))
            await send(response)

        await self.app(scope, receive, send_wrapper)

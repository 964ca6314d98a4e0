"""
GitHub webhook endpoint.

The response is decided by signature verification and classification only.
Persistence, cache invalidation and broadcast run after the response as a
background task unless WEBHOOK_PROCESS_INLINE is set.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import JSONResponse

from prpulse.config import Settings
from prpulse.logging import bind_context, get_logger
from prpulse.webhooks import WebhookRouter

from ..dependencies import get_app_settings, get_webhook_router
from ..schemas import ErrorResponse, WebhookAck

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

logger = get_logger("api.webhooks")


@router.post(
    "/github",
    response_model=WebhookAck,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    webhook_router: WebhookRouter = Depends(get_webhook_router),
    settings: Settings = Depends(get_app_settings),
):
    raw_body = await request.body()
    outcome = webhook_router.accept(raw_body, request.headers)

    if outcome.rejected:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=outcome.response_body())

    event = outcome.event
    bind_context(delivery_id=event.delivery_id, event_type=event.kind.value)

    if settings.webhook_process_inline:
        await webhook_router.process(event)
    else:
        background_tasks.add_task(webhook_router.process, event)

    return outcome.response_body()

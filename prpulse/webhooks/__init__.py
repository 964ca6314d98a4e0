"""
GitHub webhook ingestion.

Usage:
    from prpulse.webhooks import WebhookRouter, WebhookValidator

    router = WebhookRouter(WebhookValidator(secret), cache, hub, SqlWebhookPersistence(db))
    outcome = router.accept(body, request.headers)
    if not outcome.rejected:
        await router.process(outcome.event)
"""

from .events import (
    IssueCommentEvent,
    IssuesEvent,
    PullRequestEvent,
    PullRequestReviewCommentEvent,
    PullRequestReviewEvent,
    PushEvent,
    StatusEvent,
    UnhandledEvent,
    WebhookEvent,
    WebhookKind,
    classify,
)
from .persistence import SqlWebhookPersistence, WebhookPersistence
from .router import WebhookOutcome, WebhookRouter, WebhookStage
from .security import WebhookValidator, compute_signature, verify_signature

__all__ = [
    "WebhookRouter",
    "WebhookOutcome",
    "WebhookStage",
    "WebhookValidator",
    "verify_signature",
    "compute_signature",
    "WebhookPersistence",
    "SqlWebhookPersistence",
    "WebhookKind",
    "WebhookEvent",
    "PullRequestEvent",
    "PullRequestReviewEvent",
    "PullRequestReviewCommentEvent",
    "IssuesEvent",
    "IssueCommentEvent",
    "PushEvent",
    "StatusEvent",
    "UnhandledEvent",
    "classify",
]

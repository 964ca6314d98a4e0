"""
Webhook processing pipeline.

    received -> validated -> classified -> persisted -> invalidated -> broadcast -> done
                    \\
                     rejected (bad signature)

`accept` covers verification and classification and is all the HTTP
response depends on. `process` covers the rest; every step there is a soft
failure: it is logged, recorded on the outcome, and the pipeline moves on.
"""

import json
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from prpulse.cache import CacheKeys, TieredCache
from prpulse.constants import (
    DELIVERY_HEADER,
    EVENT_HEADER,
    EVENT_WEBHOOK_EVENT,
    EVENT_WEBHOOK_ISSUE,
    EVENT_WEBHOOK_PR,
    SIGNATURE_HEADER,
    WEBHOOK_INVALIDATING_PR_ACTIONS,
)
from prpulse.errors import MalformedPayloadError, WebhookSignatureError
from prpulse.logging import LogContext, get_logger
from prpulse.realtime import RealtimeHub, repo_topic

from .events import (
    IssuesEvent,
    PullRequestEvent,
    PullRequestReviewEvent,
    WebhookEvent,
    classify,
)
from .persistence import WebhookPersistence, entity_number
from .security import WebhookValidator

logger = get_logger("webhook")


class WebhookStage(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    CLASSIFIED = "classified"
    PERSISTED = "persisted"
    INVALIDATED = "invalidated"
    BROADCAST = "broadcast"
    DONE = "done"
    REJECTED = "rejected"


@dataclass
class WebhookOutcome:
    """
    What happened to one delivery.

    Attributes:
        stage: Last stage reached (DONE or REJECTED once finished)
        status_code: HTTP status to answer the sender with
        persisted: An entity row was written
        invalidated_pattern: Cache pattern cleared, if any
        delivered: Frames queued to subscribers
        soft_failures: Steps that raised and were skipped
        malformed: Fields the event kind needed but the payload lacked
    """

    stage: WebhookStage
    status_code: int = 200
    event: Optional[WebhookEvent] = None
    persisted: bool = False
    invalidated_pattern: Optional[str] = None
    delivered: int = 0
    soft_failures: list[str] = field(default_factory=list)
    malformed: list[str] = field(default_factory=list)

    @property
    def rejected(self) -> bool:
        return self.stage is WebhookStage.REJECTED

    def response_body(self) -> dict[str, Any]:
        if self.rejected:
            return {"error": "Invalid signature"}
        return {"received": True}


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive lookup that works for plain dicts and Starlette Headers."""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def _decode(raw_body: bytes) -> Any:
    try:
        return json.loads(raw_body)
    except ValueError:
        return None


class WebhookRouter:
    """
    Validates, classifies and dispatches GitHub deliveries.

    Args:
        validator: Signature check
        cache: Cache whose PR listings are cleared on PR changes
        hub: Where repository subscribers are notified
        persistence: Entity and audit writes; None skips them
    """

    def __init__(
        self,
        validator: WebhookValidator,
        cache: TieredCache,
        hub: RealtimeHub,
        persistence: Optional[WebhookPersistence] = None,
    ):
        self.validator = validator
        self.cache = cache
        self.hub = hub
        self.persistence = persistence

    # =========================================================================
    # received -> validated -> classified
    # =========================================================================

    def accept(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookOutcome:
        event_header = _header(headers, EVENT_HEADER)
        delivery_id = _header(headers, DELIVERY_HEADER)

        try:
            self.validator.require(raw_body, _header(headers, SIGNATURE_HEADER))
        except WebhookSignatureError as e:
            logger.warning(
                "webhook_rejected",
                reason=str(e),
                event_type=event_header,
                delivery_id=delivery_id,
            )
            return WebhookOutcome(stage=WebhookStage.REJECTED, status_code=401)

        payload = _decode(raw_body)
        outcome = WebhookOutcome(stage=WebhookStage.VALIDATED)
        if not isinstance(payload, dict):
            logger.info(
                "webhook_payload_malformed",
                reason="body is not a JSON object",
                event_type=event_header,
                delivery_id=delivery_id,
            )
            outcome.malformed.append("body")

        outcome.event = classify(event_header, payload, delivery_id=delivery_id)
        outcome.stage = WebhookStage.CLASSIFIED
        logger.info(
            "webhook_received",
            event_type=outcome.event.kind.value,
            action=outcome.event.action,
            repository=outcome.event.repository_full_name,
            delivery_id=delivery_id,
        )
        return outcome

    # =========================================================================
    # classified -> persisted -> invalidated -> broadcast -> done
    # =========================================================================

    async def process(self, event: WebhookEvent) -> WebhookOutcome:
        outcome = WebhookOutcome(stage=WebhookStage.CLASSIFIED, event=event)
        with LogContext(delivery_id=event.delivery_id, event_type=event.kind.value):
            if self.persistence is not None:
                persistence = self.persistence
                await self._soft(outcome, "audit", lambda: persistence.record_delivery(event))

            entity_ok = await self._persist(event, outcome)
            outcome.stage = WebhookStage.PERSISTED

            if entity_ok:
                await self._invalidate(event, outcome)
            outcome.stage = WebhookStage.INVALIDATED

            self._broadcast(event, outcome)
            outcome.stage = WebhookStage.BROADCAST

            outcome.stage = WebhookStage.DONE
            logger.info(
                "webhook_processed",
                repository=event.repository_full_name,
                persisted=outcome.persisted,
                invalidated_pattern=outcome.invalidated_pattern,
                delivered=outcome.delivered,
                soft_failures=outcome.soft_failures,
            )
        return outcome

    async def handle(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookOutcome:
        """accept + process in one call."""
        accepted = self.accept(raw_body, headers)
        if accepted.rejected or accepted.event is None:
            return accepted
        outcome = await self.process(accepted.event)
        outcome.malformed = accepted.malformed + outcome.malformed
        return outcome

    # =========================================================================
    # Steps
    # =========================================================================

    async def _soft(
        self,
        outcome: WebhookOutcome,
        step: str,
        work: Callable[[], Awaitable[Any]],
    ) -> Any:
        try:
            return await work()
        except Exception as e:
            outcome.soft_failures.append(step)
            logger.error(
                "webhook_step_failed",
                step=step,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    def _malformed(self, outcome: WebhookOutcome, error: MalformedPayloadError) -> bool:
        outcome.malformed.append(error.missing)
        logger.info("webhook_payload_malformed", reason=str(error))
        return False

    async def _persist(self, event: WebhookEvent, outcome: WebhookOutcome) -> bool:
        """
        Upsert the entity the event carries.

        Returns False when the payload lacks what its kind requires, which also
        skips invalidation.
        """
        repository = event.repository_full_name

        if isinstance(event, PullRequestEvent):
            if event.pull_request is None:
                return self._malformed(outcome, MalformedPayloadError(event.kind.value, "pull_request"))
            if repository is None:
                return self._malformed(outcome, MalformedPayloadError(event.kind.value, "repository"))
            if entity_number(event.pull_request) is None:
                return self._malformed(
                    outcome, MalformedPayloadError(event.kind.value, "pull_request.number")
                )
            if self.persistence is not None:
                persistence, pull_request = self.persistence, event.pull_request
                changed = await self._soft(
                    outcome,
                    "persist",
                    lambda: persistence.upsert_pull_request(repository, pull_request),
                )
                outcome.persisted = bool(changed)
            return True

        if isinstance(event, IssuesEvent):
            if event.issue is None:
                return self._malformed(outcome, MalformedPayloadError(event.kind.value, "issue"))
            if repository is None or entity_number(event.issue) is None:
                return self._malformed(outcome, MalformedPayloadError(event.kind.value, "issue.number"))
            if event.is_pull_request:
                logger.debug("webhook_issue_is_pull_request", repository=repository)
                return True
            if self.persistence is not None:
                persistence, issue = self.persistence, event.issue
                changed = await self._soft(
                    outcome, "persist", lambda: persistence.upsert_issue(repository, issue)
                )
                outcome.persisted = bool(changed)
            return True

        return True

    @staticmethod
    def invalidation_pattern(event: WebhookEvent) -> Optional[str]:
        """Cache pattern the event invalidates, or None."""
        repository = event.repository_full_name
        if repository is None:
            return None
        if isinstance(event, PullRequestEvent):
            if event.pull_request is not None and event.action in WEBHOOK_INVALIDATING_PR_ACTIONS:
                return CacheKeys.repository_pull_requests_pattern(repository)
            return None
        if isinstance(event, PullRequestReviewEvent):
            return CacheKeys.repository_pull_requests_pattern(repository)
        return None

    async def _invalidate(self, event: WebhookEvent, outcome: WebhookOutcome) -> None:
        pattern = self.invalidation_pattern(event)
        if pattern is None:
            return
        removed = await self._soft(outcome, "invalidate", lambda: self.cache.clear(pattern))
        if removed is not None:
            outcome.invalidated_pattern = pattern

    @staticmethod
    def broadcast_message(event: WebhookEvent) -> tuple[str, dict[str, Any]]:
        """Realtime event name and payload for a delivery."""
        if isinstance(event, PullRequestEvent):
            return EVENT_WEBHOOK_PR, {"action": event.display_action, "pullRequest": event.pull_request}
        if isinstance(event, IssuesEvent):
            return EVENT_WEBHOOK_ISSUE, {"action": event.display_action, "issue": event.issue}
        return EVENT_WEBHOOK_EVENT, {"action": event.display_action, "payload": event.raw_payload}

    def _broadcast(self, event: WebhookEvent, outcome: WebhookOutcome) -> None:
        if event.repository_full_name is None:
            logger.info("webhook_not_broadcast", reason="no repository")
            return
        name, payload = self.broadcast_message(event)
        try:
            outcome.delivered = self.hub.broadcast(repo_topic(event.repository_full_name), name, payload)
        except Exception as e:
            outcome.soft_failures.append("broadcast")
            logger.error("webhook_step_failed", step="broadcast", error=str(e), error_type=type(e).__name__)


__all__ = ["WebhookRouter", "WebhookOutcome", "WebhookStage"]

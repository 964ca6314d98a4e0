"""
Typed webhook events.

A delivery is classified once, right after signature verification, into one
frozen dataclass per event kind. Downstream steps branch on the class instead
of probing the raw payload. The raw payload is kept for the audit log.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional

from prpulse.timeutils import utcnow


class WebhookKind(str, Enum):
    """GitHub event kinds with dedicated handling."""

    PULL_REQUEST = "pull_request"
    PULL_REQUEST_REVIEW = "pull_request_review"
    PULL_REQUEST_REVIEW_COMMENT = "pull_request_review_comment"
    ISSUES = "issues"
    ISSUE_COMMENT = "issue_comment"
    PUSH = "push"
    STATUS = "status"
    UNHANDLED = "unhandled"

    @classmethod
    def from_header(cls, value: Optional[str]) -> "WebhookKind":
        """Map the X-GitHub-Event header; anything unknown is UNHANDLED."""
        if value:
            try:
                kind = cls(value.strip())
            except ValueError:
                return cls.UNHANDLED
            return kind
        return cls.UNHANDLED


def _mapping(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class WebhookEvent:
    """
    Fields shared by every kind.

    Attributes:
        action: Payload `action`, when the kind has one
        repository_full_name: `repository.full_name`; partitions invalidation and topics
        raw_payload: The decoded body exactly as received
        delivery_id: X-GitHub-Delivery header
    """

    kind: ClassVar[WebhookKind] = WebhookKind.UNHANDLED

    action: Optional[str]
    repository_full_name: Optional[str]
    raw_payload: Dict[str, Any]
    delivery_id: Optional[str] = None
    received_at: datetime = field(default_factory=utcnow)

    @property
    def display_action(self) -> str:
        """Action for broadcast payloads; falls back to the kind."""
        return self.action or self.kind.value


@dataclass(frozen=True)
class PullRequestEvent(WebhookEvent):
    kind: ClassVar[WebhookKind] = WebhookKind.PULL_REQUEST

    pull_request: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class PullRequestReviewEvent(WebhookEvent):
    kind: ClassVar[WebhookKind] = WebhookKind.PULL_REQUEST_REVIEW

    pull_request: Optional[Dict[str, Any]] = None
    review: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class PullRequestReviewCommentEvent(WebhookEvent):
    kind: ClassVar[WebhookKind] = WebhookKind.PULL_REQUEST_REVIEW_COMMENT

    pull_request: Optional[Dict[str, Any]] = None
    comment: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class IssuesEvent(WebhookEvent):
    kind: ClassVar[WebhookKind] = WebhookKind.ISSUES

    issue: Optional[Dict[str, Any]] = None

    @property
    def is_pull_request(self) -> bool:
        """GitHub reports PR conversations as issues carrying a `pull_request` key."""
        return self.issue is not None and "pull_request" in self.issue


@dataclass(frozen=True)
class IssueCommentEvent(WebhookEvent):
    kind: ClassVar[WebhookKind] = WebhookKind.ISSUE_COMMENT

    issue: Optional[Dict[str, Any]] = None
    comment: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class PushEvent(WebhookEvent):
    kind: ClassVar[WebhookKind] = WebhookKind.PUSH

    ref: Optional[str] = None
    head_commit: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class StatusEvent(WebhookEvent):
    kind: ClassVar[WebhookKind] = WebhookKind.STATUS

    sha: Optional[str] = None
    state: Optional[str] = None


@dataclass(frozen=True)
class UnhandledEvent(WebhookEvent):
    kind: ClassVar[WebhookKind] = WebhookKind.UNHANDLED

    event_name: Optional[str] = None


def classify(
    event_header: Optional[str],
    payload: Any,
    delivery_id: Optional[str] = None,
    received_at: Optional[datetime] = None,
) -> WebhookEvent:
    """
    Narrow a decoded webhook body into its WebhookEvent variant.

    Never raises. A body that is not a JSON object becomes an UnhandledEvent
    with an empty payload and no repository.
    """
    body = _mapping(payload)
    if body is None:
        return UnhandledEvent(
            action=None,
            repository_full_name=None,
            raw_payload={},
            delivery_id=delivery_id,
            received_at=received_at or utcnow(),
            event_name=event_header,
        )

    repository = _mapping(body.get("repository")) or {}
    common: Dict[str, Any] = {
        "action": _string(body.get("action")),
        "repository_full_name": _string(repository.get("full_name")),
        "raw_payload": body,
        "delivery_id": delivery_id,
        "received_at": received_at or utcnow(),
    }

    kind = WebhookKind.from_header(event_header)

    if kind is WebhookKind.PULL_REQUEST:
        return PullRequestEvent(**common, pull_request=_mapping(body.get("pull_request")))
    if kind is WebhookKind.PULL_REQUEST_REVIEW:
        return PullRequestReviewEvent(
            **common,
            pull_request=_mapping(body.get("pull_request")),
            review=_mapping(body.get("review")),
        )
    if kind is WebhookKind.PULL_REQUEST_REVIEW_COMMENT:
        return PullRequestReviewCommentEvent(
            **common,
            pull_request=_mapping(body.get("pull_request")),
            comment=_mapping(body.get("comment")),
        )
    if kind is WebhookKind.ISSUES:
        return IssuesEvent(**common, issue=_mapping(body.get("issue")))
    if kind is WebhookKind.ISSUE_COMMENT:
        return IssueCommentEvent(
            **common,
            issue=_mapping(body.get("issue")),
            comment=_mapping(body.get("comment")),
        )
    if kind is WebhookKind.PUSH:
        return PushEvent(
            **common,
            ref=_string(body.get("ref")),
            head_commit=_mapping(body.get("head_commit")),
        )
    if kind is WebhookKind.STATUS:
        return StatusEvent(**common, sha=_string(body.get("sha")), state=_string(body.get("state")))
    return UnhandledEvent(**common, event_name=event_header)


__all__ = [
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

"""
Entity persistence used by the webhook pipeline.

The router only depends on the WebhookPersistence protocol; the SQL
implementation runs each call in its own short session on the threadpool.
"""

from typing import Any, Dict, Optional, Protocol

from prpulse.db import DatabaseManager
from prpulse.logging import get_logger
from prpulse.repositories import IssueRepository, PullRequestRepository, WebhookLogRepository

from .events import WebhookEvent

logger = get_logger("webhook")


class WebhookPersistence(Protocol):
    async def record_delivery(self, event: WebhookEvent) -> None:
        ...

    async def upsert_pull_request(self, repository_full_name: str, pull_request: Dict[str, Any]) -> bool:
        ...

    async def upsert_issue(self, repository_full_name: str, issue: Dict[str, Any]) -> bool:
        ...


class SqlWebhookPersistence:
    """
    SQLAlchemy-backed persistence.

    Upserts return whether the stored row actually changed, so a replayed
    delivery can be logged as a no-op.
    """

    def __init__(self, database: DatabaseManager):
        self.database = database

    async def record_delivery(self, event: WebhookEvent) -> None:
        """Append the delivery to the audit log."""
        await self.database.run(
            lambda session: WebhookLogRepository(session).append(
                event_type=event.kind.value,
                payload=event.raw_payload,
                action=event.action,
                repository_full_name=event.repository_full_name,
                delivery_id=event.delivery_id,
            )
        )

    async def upsert_pull_request(self, repository_full_name: str, pull_request: Dict[str, Any]) -> bool:
        def _upsert(session) -> bool:
            _, changed = PullRequestRepository(session).upsert_from_payload(
                repository_full_name, pull_request
            )
            return changed

        return await self.database.run(_upsert)

    async def upsert_issue(self, repository_full_name: str, issue: Dict[str, Any]) -> bool:
        def _upsert(session) -> bool:
            _, changed = IssueRepository(session).upsert_from_payload(repository_full_name, issue)
            return changed

        return await self.database.run(_upsert)


def entity_number(entity: Optional[Dict[str, Any]]) -> Optional[int]:
    """`number` of a PR/issue object, or None if it is absent or not an int."""
    if entity is None:
        return None
    number = entity.get("number")
    return number if isinstance(number, int) and not isinstance(number, bool) else None


__all__ = [
    "WebhookPersistence",
    "SqlWebhookPersistence",
    "entity_number",
]

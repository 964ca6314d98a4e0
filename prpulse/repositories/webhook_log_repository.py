"""Append-only webhook audit log repository."""

from typing import Any

from prpulse.models import WebhookLog

from .base import BaseRepository


class WebhookLogRepository(BaseRepository[WebhookLog]):
    """Repository for the webhook audit trail. Exposes no update path."""

    model = WebhookLog

    def append(
        self,
        event_type: str,
        payload: dict[str, Any],
        action: str | None = None,
        repository_full_name: str | None = None,
        delivery_id: str | None = None,
    ) -> WebhookLog:
        entry = WebhookLog(
            delivery_id=delivery_id,
            event_type=event_type,
            action=action,
            repository_full_name=repository_full_name,
            payload=payload,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def recent(self, limit: int = 50, repository_full_name: str | None = None) -> list[WebhookLog]:
        """Most recent deliveries first."""
        query = self.session.query(WebhookLog)
        if repository_full_name:
            query = query.filter(WebhookLog.repository_full_name == repository_full_name)
        return query.order_by(WebhookLog.id.desc()).limit(limit).all()

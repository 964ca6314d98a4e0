"""
Webhook audit log SQLAlchemy model.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from prpulse.db import Base
from prpulse.timeutils import to_naive_utc, utcnow


class WebhookLog(Base):
    """
    Append-only record of every accepted webhook delivery.

    Rows are never updated; processing results are reported through logs,
    not written back here.
    """

    __tablename__ = "webhook_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    delivery_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    event_type: Mapped[str] = mapped_column(String(64), index=True)
    action: Mapped[Optional[str]] = mapped_column(String(64))
    repository_full_name: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON)
    received_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: to_naive_utc(utcnow())
    )

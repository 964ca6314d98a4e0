"""
Durable cache tier SQLAlchemy model.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from prpulse.db import Base
from prpulse.timeutils import to_naive_utc, utcnow


class CacheEntry(Base):
    """
    Durable cache row.

    `data` is opaque JSON text; the cache layer never queries into it.
    Rows past `expires_at` are invisible to reads and removed by the
    periodic durable cleanup.
    """

    __tablename__ = "cache"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    data: Mapped[str] = mapped_column(Text)
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: to_naive_utc(utcnow())
    )

    def __repr__(self) -> str:
        return f"<CacheEntry key={self.key!r} expires_at={self.expires_at}>"

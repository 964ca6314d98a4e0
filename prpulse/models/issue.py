"""
Issue SQLAlchemy model.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from prpulse.db import Base


def issue_record_id(repository_full_name: str, number: int) -> str:
    """Deterministic composite key, e.g. `issue-acme/widgets-7`."""
    return f"issue-{repository_full_name}-{number}"


class IssueRecord(Base):
    """Last known state of a GitHub issue (pull requests excluded)."""

    __tablename__ = "issues"

    id: Mapped[str] = mapped_column(String(512), primary_key=True)
    number: Mapped[int] = mapped_column(Integer)
    title: Mapped[Optional[str]] = mapped_column(String(1024))
    description: Mapped[Optional[str]] = mapped_column(Text)
    state: Mapped[Optional[str]] = mapped_column(String(32))
    repository_full_name: Mapped[str] = mapped_column(String(255), index=True)
    author: Mapped[Optional[str]] = mapped_column(String(255))
    data: Mapped[Dict[str, Any]] = mapped_column(JSON)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

"""
Pull request SQLAlchemy model.

Rows are upserted from `pull_request` webhooks and read back by the cached
pull request endpoint.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from prpulse.db import Base


def pull_request_record_id(repository_full_name: str, number: int) -> str:
    """Deterministic composite key, e.g. `pr-acme/widgets-42`."""
    return f"pr-{repository_full_name}-{number}"


class PullRequestRecord(Base):
    """
    Last known state of a GitHub pull request.

    Attributes:
        id: Composite key from pull_request_record_id()
        status: 'draft' for draft PRs, otherwise GitHub's state ('open'/'closed')
        data: Full pull request object as delivered by GitHub
    """

    __tablename__ = "pull_requests"

    id: Mapped[str] = mapped_column(String(512), primary_key=True)
    number: Mapped[int] = mapped_column(Integer)
    title: Mapped[Optional[str]] = mapped_column(String(1024))
    branch_name: Mapped[Optional[str]] = mapped_column(String(255))
    base_branch: Mapped[Optional[str]] = mapped_column(String(255))
    repository_full_name: Mapped[str] = mapped_column(String(255), index=True)
    status: Mapped[Optional[str]] = mapped_column(String(32))
    description: Mapped[Optional[str]] = mapped_column(Text)
    author: Mapped[Optional[str]] = mapped_column(String(255))
    data: Mapped[Dict[str, Any]] = mapped_column(JSON)
    last_updated: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "title": self.title,
            "branchName": self.branch_name,
            "baseBranch": self.base_branch,
            "repository": self.repository_full_name,
            "status": self.status,
            "description": self.description,
            "author": self.author,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
            "created": self.created_at.isoformat() if self.created_at else None,
        }

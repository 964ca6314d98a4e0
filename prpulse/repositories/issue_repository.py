"""Issue repository for webhook upserts."""

from typing import Any

from prpulse.models import IssueRecord, issue_record_id
from prpulse.timeutils import parse_github_datetime

from .base import BaseRepository


class IssueRepository(BaseRepository[IssueRecord]):
    """Repository for persisted issue state."""

    model = IssueRecord

    def upsert_from_payload(
        self, repository_full_name: str, issue: dict[str, Any]
    ) -> tuple[IssueRecord, bool]:
        """Insert or replace an issue from a GitHub `issue` object."""
        number = int(issue["number"])
        user = issue.get("user")
        values = {
            "number": number,
            "title": issue.get("title"),
            "description": issue.get("body") or "",
            "state": issue.get("state"),
            "repository_full_name": repository_full_name,
            "author": user.get("login") if isinstance(user, dict) else None,
            "data": issue,
            "created_at": parse_github_datetime(issue.get("created_at")),
            "updated_at": parse_github_datetime(issue.get("updated_at")),
        }
        return self._upsert(issue_record_id(repository_full_name, number), values)

    def list_for_repository(self, repository_full_name: str) -> list[IssueRecord]:
        return (
            self.session.query(IssueRecord)
            .filter(IssueRecord.repository_full_name == repository_full_name)
            .order_by(IssueRecord.number.desc())
            .all()
        )

"""Pull request repository for webhook upserts and cached listings."""

from typing import Any

from prpulse.models import PullRequestRecord, pull_request_record_id
from prpulse.timeutils import parse_github_datetime

from .base import BaseRepository


def _login(user: Any) -> str | None:
    if isinstance(user, dict):
        return user.get("login")
    return None


def _ref(side: Any) -> str | None:
    if isinstance(side, dict):
        return side.get("ref")
    return None


class PullRequestRepository(BaseRepository[PullRequestRecord]):
    """Repository for persisted pull request state."""

    model = PullRequestRecord

    def upsert_from_payload(
        self, repository_full_name: str, pull_request: dict[str, Any]
    ) -> tuple[PullRequestRecord, bool]:
        """
        Insert or replace a pull request from a GitHub `pull_request` object.

        Args:
            repository_full_name: "owner/name" the PR belongs to
            pull_request: GitHub pull request object (must carry `number`)

        Returns:
            (record, changed) where changed is False for a replayed delivery
        """
        number = int(pull_request["number"])
        values = {
            "number": number,
            "title": pull_request.get("title"),
            "branch_name": _ref(pull_request.get("head")),
            "base_branch": _ref(pull_request.get("base")),
            "repository_full_name": repository_full_name,
            "status": "draft" if pull_request.get("draft") else pull_request.get("state"),
            "description": pull_request.get("body") or "",
            "author": _login(pull_request.get("user")),
            "data": pull_request,
            "last_updated": parse_github_datetime(pull_request.get("updated_at")),
            "created_at": parse_github_datetime(pull_request.get("created_at")),
        }
        return self._upsert(pull_request_record_id(repository_full_name, number), values)

    def list_for_repositories(
        self,
        repositories: list[str] | None = None,
        state: str = "all",
    ) -> list[PullRequestRecord]:
        """
        Persisted pull requests, optionally limited to repositories and a state.

        `state` follows GitHub's filter: 'open' includes drafts, 'all' disables
        the filter.
        """
        query = self.session.query(PullRequestRecord)
        if repositories:
            query = query.filter(PullRequestRecord.repository_full_name.in_(repositories))
        if state == "open":
            query = query.filter(PullRequestRecord.status.in_(("open", "draft")))
        elif state != "all":
            query = query.filter(PullRequestRecord.status == state)
        return query.order_by(
            PullRequestRecord.repository_full_name, PullRequestRecord.number.desc()
        ).all()

"""
Repository pattern implementations for data access.

Usage:
    from prpulse.repositories import PullRequestRepository
    from prpulse.db import db

    with db.session() as session:
        repo = PullRequestRepository(session)
        record, changed = repo.upsert_from_payload("acme/widgets", pr_payload)
"""

from .base import BaseRepository
from .issue_repository import IssueRepository
from .pull_request_repository import PullRequestRepository
from .webhook_log_repository import WebhookLogRepository

__all__ = [
    "BaseRepository",
    "IssueRepository",
    "PullRequestRepository",
    "WebhookLogRepository",
]

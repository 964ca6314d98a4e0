"""
SQLAlchemy models for PR Pulse.

Usage:
    from prpulse.models import CacheEntry, PullRequestRecord, IssueRecord, WebhookLog
"""

from prpulse.db import Base

from .cache_entry import CacheEntry
from .issue import IssueRecord, issue_record_id
from .pull_request import PullRequestRecord, pull_request_record_id
from .webhook_log import WebhookLog

__all__ = [
    "Base",
    # Durable cache tier
    "CacheEntry",
    # Entities touched by webhooks
    "PullRequestRecord",
    "pull_request_record_id",
    "IssueRecord",
    "issue_record_id",
    # Audit
    "WebhookLog",
]

"""
Realtime fan-out.

Usage:
    from prpulse.realtime import RealtimeHub, ClientConnection, repo_topic
"""

from .connection import ClientConnection
from .hub import RealtimeHub
from .topics import repo_topic, repository_from_pr_id, user_topic

__all__ = [
    "RealtimeHub",
    "ClientConnection",
    "repo_topic",
    "user_topic",
    "repository_from_pr_id",
]

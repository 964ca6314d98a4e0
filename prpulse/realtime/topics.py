"""Topic naming for realtime subscriptions."""

import re
from typing import Optional

REPO_PREFIX = "repo:"
USER_PREFIX = "user:"

_PR_ID = re.compile(r"pr-(.+)-(\d+)")


def repo_topic(repository_full_name: str) -> str:
    return f"{REPO_PREFIX}{repository_full_name}"


def user_topic(user_id: str) -> str:
    return f"{USER_PREFIX}{user_id}"


def repository_from_pr_id(pr_id: str) -> Optional[str]:
    """`pr-acme/widgets-42` -> `acme/widgets`; None if pr_id is not in that form."""
    match = _PR_ID.fullmatch(pr_id or "")
    return match.group(1) if match else None


__all__ = ["repo_topic", "user_topic", "repository_from_pr_id"]

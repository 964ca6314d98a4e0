"""
Pytest fixtures for PR Pulse tests.

Database-backed tests run against in-memory SQLite through the same
DatabaseManager the application uses.
"""

from datetime import datetime, timedelta, timezone

import pytest

from prpulse.db import DatabaseManager


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FrameRecorder:
    """Stands in for WebSocket.send_json."""

    def __init__(self, fail: bool = False):
        self.frames: list[dict] = []
        self.fail = fail

    async def __call__(self, frame: dict) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.frames.append(frame)

    @property
    def events(self) -> list[str]:
        return [frame["event"] for frame in self.frames]


@pytest.fixture
def database():
    """Fresh in-memory database with every table created."""
    manager = DatabaseManager()
    manager.initialize("sqlite://")
    manager.create_all_tables()
    yield manager
    manager.reset()


@pytest.fixture
def test_session(database):
    with database.session() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder_factory():
    return FrameRecorder


@pytest.fixture
def pr_payload():
    """Minimal `pull_request` delivery for acme/widgets#42."""

    def _build(action: str = "opened", number: int = 42, repository: str = "acme/widgets", **pr_fields):
        pull_request = {
            "number": number,
            "title": "Add sprocket support",
            "state": "open",
            "draft": False,
            "body": "Adds sprockets.",
            "user": {"login": "octocat"},
            "head": {"ref": "feature/sprockets"},
            "base": {"ref": "main"},
            "created_at": "2026-01-01T10:00:00Z",
            "updated_at": "2026-01-01T11:00:00Z",
        }
        pull_request.update(pr_fields)
        return {
            "action": action,
            "number": number,
            "pull_request": pull_request,
            "repository": {"full_name": repository},
        }

    return _build

import json
from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from backend.app.config import Settings
from backend.app.main import create_app
from prpulse.db import DatabaseManager
from prpulse.webhooks import compute_signature

WEBHOOK_SECRET = "backend-test-webhook-secret"


def build_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "sqlite://",
        "CACHE_BACKEND": "sql",
        "GITHUB_WEBHOOK_SECRET": WEBHOOK_SECRET,
        "ENABLE_SCHEDULER": False,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def app_settings() -> Settings:
    return build_settings()


@pytest.fixture
def test_app_client(app_settings) -> Iterator[TestClient]:
    """Client for a fully started app over in-memory SQLite."""
    app = create_app(app_settings, DatabaseManager())
    with TestClient(app) as client:
        yield client


@pytest.fixture
def send_webhook(test_app_client) -> Callable:
    """POST a signed delivery to the webhook endpoint."""

    def _send(event: str, payload, delivery_id: str = "delivery-1", secret: str = WEBHOOK_SECRET):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        return test_app_client.post(
            "/api/webhooks/github",
            content=body,
            headers={
                "Content-Type": "application/json",
                "X-GitHub-Event": event,
                "X-GitHub-Delivery": delivery_id,
                "X-Hub-Signature-256": compute_signature(body, secret),
            },
        )

    return _send


@pytest.fixture
def pr_delivery() -> Callable:
    """Body of a `pull_request` delivery."""

    def _build(action: str = "opened", number: int = 42, repository: str = "acme/widgets"):
        return {
            "action": action,
            "pull_request": {
                "number": number,
                "title": "Add sprocket support",
                "state": "open",
                "user": {"login": "octocat"},
                "head": {"ref": "feature/sprockets"},
                "base": {"ref": "main"},
            },
            "repository": {"full_name": repository},
        }

    return _build


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """build_settings with env-style overrides, e.g. CACHE_BACKEND="memory"."""
    return build_settings

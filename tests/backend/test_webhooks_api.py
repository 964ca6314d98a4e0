"""Tests for the GitHub webhook endpoint."""

from fastapi.testclient import TestClient

from backend.app.dependencies import get_webhook_router
from backend.app.main import create_app
from prpulse.db import DatabaseManager
from prpulse.models import PullRequestRecord, WebhookLog
from prpulse.webhooks.router import WebhookOutcome, WebhookStage


class TestGithubWebhook:
    def test_signed_delivery_acknowledged_and_persisted(self, test_app_client, send_webhook, pr_delivery):
        response = send_webhook("pull_request", pr_delivery())

        assert response.status_code == 200
        assert response.json() == {"received": True}

        database = test_app_client.app.state.database
        with database.session() as session:
            assert session.get(PullRequestRecord, "pr-acme/widgets-42") is not None
            assert session.query(WebhookLog).one().delivery_id == "delivery-1"

    def test_bad_signature_rejected(self, test_app_client, send_webhook, pr_delivery):
        response = send_webhook("pull_request", pr_delivery(), secret="not-the-secret")

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid signature"}
        with test_app_client.app.state.database.session() as session:
            assert session.query(WebhookLog).count() == 0

    def test_missing_signature_rejected(self, test_app_client, pr_delivery):
        response = test_app_client.post(
            "/api/webhooks/github",
            json=pr_delivery(),
            headers={"X-GitHub-Event": "pull_request"},
        )
        assert response.status_code == 401

    def test_malformed_payload_still_acknowledged(self, send_webhook):
        response = send_webhook("pull_request", {"action": "opened", "repository": {"full_name": "acme/widgets"}})
        assert response.status_code == 200

    def test_invalid_json_still_acknowledged(self, send_webhook):
        response = send_webhook("pull_request", b"{definitely not json")
        assert response.status_code == 200
        assert response.json() == {"received": True}

    def test_unknown_event_acknowledged(self, send_webhook):
        response = send_webhook("deployment_status", {"repository": {"full_name": "acme/widgets"}})
        assert response.status_code == 200

    def test_response_echoes_delivery_as_request_id(self, send_webhook):
        response = send_webhook("push", {"ref": "refs/heads/main"}, delivery_id="abc-123")
        assert response.headers["X-Request-ID"] == "abc-123"


class UnclassifiedRouter:
    """Accepts every delivery but never attaches an event."""

    def accept(self, raw_body, headers):
        return WebhookOutcome(stage=WebhookStage.VALIDATED)


def test_unclassified_delivery_is_server_error_not_auth_failure(settings_factory):
    app = create_app(settings_factory(), DatabaseManager())
    app.dependency_overrides[get_webhook_router] = UnclassifiedRouter

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.post(
            "/api/webhooks/github", content=b"{}", headers={"X-GitHub-Event": "push"}
        )

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}

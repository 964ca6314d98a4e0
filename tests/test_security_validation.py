"""Tests for startup security validation."""

import pytest

from prpulse.security import SecurityConfigError, validate_security_config
from prpulse.security.validation import validate_cors_origins, validate_webhook_secret

STRONG_SECRET = "x" * 32


class TestWebhookSecret:
    def test_missing_secret_is_fatal_only_in_production(self):
        ok, error, _ = validate_webhook_secret(None, production=True)
        assert not ok and "required" in error

        ok, error, warning = validate_webhook_secret(None, production=False)
        assert ok and error is None
        assert "NOT be verified" in warning

    @pytest.mark.parametrize("secret", ["changeme", "Secret", "test"])
    def test_placeholder_secret(self, secret):
        assert validate_webhook_secret(secret, production=True)[0] is False
        assert validate_webhook_secret(secret, production=False)[2] is not None

    def test_short_secret_warns(self):
        ok, error, warning = validate_webhook_secret("abc123xyz", production=True)
        assert ok and error is None
        assert "short" in warning

    def test_strong_secret_passes_cleanly(self):
        assert validate_webhook_secret(STRONG_SECRET, production=True) == (True, None, None)


def test_wildcard_cors_warns():
    ok, _, warning = validate_cors_origins("*", production=False)
    assert ok and "*" in warning


def test_config_collects_warnings():
    result = validate_security_config(
        webhook_secret=STRONG_SECRET,
        cors_origins="http://localhost:3000",
        database_url="sqlite:///pr_pulse.db",
        production=True,
    )

    assert result.valid
    assert len(result.warnings) == 2


def test_config_raises_on_errors():
    with pytest.raises(SecurityConfigError) as exc_info:
        validate_security_config(webhook_secret=None, cors_origins="", production=True)

    assert len(exc_info.value.errors) == 2


def test_strict_mode_promotes_warnings():
    with pytest.raises(SecurityConfigError):
        validate_security_config(webhook_secret="short-secret", strict=True)

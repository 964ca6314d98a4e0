"""Tests for webhook signature verification."""

import pytest

from prpulse.errors import WebhookSignatureError
from prpulse.webhooks import WebhookValidator, compute_signature, verify_signature

SECRET = b"s3cr3t-webhook-key"
BODY = b'{"action":"opened"}'


def test_valid_signature_accepted():
    assert verify_signature(BODY, compute_signature(BODY, SECRET), SECRET)


def test_signature_format():
    signature = compute_signature(BODY, SECRET)
    assert signature.startswith("sha256=")
    assert len(signature) == len("sha256=") + 64


def test_tampered_body_rejected():
    signature = compute_signature(BODY, SECRET)
    assert not verify_signature(b'{"action":"closed"}', signature, SECRET)


def test_wrong_digest_rejected():
    assert not verify_signature(BODY, "sha256=deadbeef", SECRET)


def test_missing_or_unprefixed_header_rejected():
    digest = compute_signature(BODY, SECRET)[len("sha256=") :]

    assert not verify_signature(BODY, None, SECRET)
    assert not verify_signature(BODY, "", SECRET)
    assert not verify_signature(BODY, digest, SECRET)
    assert not verify_signature(BODY, "sha1=" + digest, SECRET)


def test_non_ascii_header_rejected_without_raising():
    assert not verify_signature(BODY, "sha256=éé", SECRET)


def test_str_and_bytes_secrets_agree():
    assert compute_signature(BODY, SECRET) == compute_signature(BODY, SECRET.decode())


def test_no_secret_accepts_everything():
    assert verify_signature(BODY, None, None)
    assert verify_signature(BODY, "sha256=deadbeef", b"")


class TestWebhookValidator:
    def test_enforcing_with_secret(self):
        validator = WebhookValidator("s3cr3t-webhook-key")

        assert validator.enforcing
        assert validator.verify(BODY, compute_signature(BODY, SECRET))
        assert not validator.verify(BODY, "sha256=deadbeef")

    def test_not_enforcing_without_secret(self):
        validator = WebhookValidator(None)

        assert not validator.enforcing
        assert validator.verify(BODY, None)

    def test_require_raises_on_mismatch(self):
        validator = WebhookValidator(SECRET)

        validator.require(BODY, compute_signature(BODY, SECRET))
        with pytest.raises(WebhookSignatureError):
            validator.require(BODY, "sha256=deadbeef")

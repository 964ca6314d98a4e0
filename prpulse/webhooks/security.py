"""
GitHub webhook signature verification.

GitHub signs each delivery with HMAC-SHA256 over the raw request body and
sends `sha256=<hexdigest>` in X-Hub-Signature-256. The digest is compared in
constant time. Neither the secret nor the computed digest is ever logged.
"""

import hashlib
import hmac
from typing import Optional, Union

from prpulse.constants import SIGNATURE_PREFIX
from prpulse.errors import WebhookSignatureError
from prpulse.logging import get_logger

logger = get_logger("webhook")

Secret = Union[str, bytes]


def _secret_bytes(secret: Secret) -> bytes:
    return secret.encode("utf-8") if isinstance(secret, str) else secret


def compute_signature(raw_body: bytes, secret: Secret) -> str:
    """`sha256=` + hex HMAC-SHA256 of raw_body. Used by tests and tooling."""
    digest = hmac.new(_secret_bytes(secret), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(
    raw_body: bytes,
    signature_header: Optional[str],
    secret: Optional[Secret],
) -> bool:
    """
    Verify a GitHub webhook signature.

    Args:
        raw_body: Request body exactly as received
        signature_header: Value of X-Hub-Signature-256 (may be missing)
        secret: Shared webhook secret; None disables verification

    Returns:
        True if the signature matches, or if no secret is configured.
    """
    if not secret:
        logger.warning("webhook_signature_unverified", reason="no secret configured")
        return True

    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        logger.warning("webhook_signature_malformed", header_present=bool(signature_header))
        return False

    expected = compute_signature(raw_body, secret).encode("ascii")
    received = signature_header.encode("utf-8", errors="replace")

    # compare_digest is constant-time for equal lengths; unequal lengths only
    # reveal the header's own length
    return hmac.compare_digest(received, expected)


class WebhookValidator:
    """
    Holds the configured secret and verifies deliveries against it.

    Usage:
        validator = WebhookValidator(settings.webhook_secret_bytes)
        if not validator.verify(body, request.headers.get(SIGNATURE_HEADER)):
            ...
    """

    def __init__(self, secret: Optional[Secret]):
        self._secret = _secret_bytes(secret) if secret else None

    @property
    def enforcing(self) -> bool:
        """False when running without a secret (development mode)."""
        return self._secret is not None

    def verify(self, raw_body: bytes, signature_header: Optional[str]) -> bool:
        return verify_signature(raw_body, signature_header, self._secret)

    def require(self, raw_body: bytes, signature_header: Optional[str]) -> None:
        """Like verify, but raises WebhookSignatureError on mismatch."""
        if not self.verify(raw_body, signature_header):
            raise WebhookSignatureError("X-Hub-Signature-256 does not match the request body")

    def __repr__(self) -> str:
        return f"WebhookValidator(enforcing={self.enforcing})"


__all__ = ["WebhookValidator", "verify_signature", "compute_signature"]

"""Exception hierarchy shared by the cache, webhook and realtime layers."""


class PrPulseError(Exception):
    """Base class for PR Pulse errors."""


class CacheStoreError(PrPulseError):
    """
    The durable cache tier could not complete an operation.

    Raised by every CacheStore implementation in place of the backend's own
    exception (SQLAlchemyError, RedisError, ...). TieredCache treats it as a
    miss on reads and re-raises it on writes and invalidations.
    """

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"cache store {operation} failed: {detail}")


class WebhookSignatureError(PrPulseError):
    """Inbound webhook signature did not match the configured secret."""


class MalformedPayloadError(PrPulseError):
    """A webhook payload is missing the fields its event kind requires."""

    def __init__(self, kind: str, missing: str):
        self.kind = kind
        self.missing = missing
        super().__init__(f"{kind} payload missing '{missing}'")


__all__ = [
    "PrPulseError",
    "CacheStoreError",
    "WebhookSignatureError",
    "MalformedPayloadError",
]

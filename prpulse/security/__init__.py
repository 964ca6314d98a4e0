"""
Security module for PR Pulse.

Provides:
- Startup configuration validation (webhook secret, CORS, database URL)

Webhook signature verification lives in prpulse.webhooks.security.
"""

from .validation import SecurityConfigError, ValidationResult, validate_security_config

__all__ = ["SecurityConfigError", "ValidationResult", "validate_security_config"]

"""
Security configuration validation.

Ensures the webhook secret and the exposed surfaces are configured sensibly
before the application starts accepting deliveries.
"""

from dataclasses import dataclass

from prpulse.logging import get_logger

logger = get_logger("security.validation")

# GitHub accepts any secret; these are the ones people paste from docs.
PLACEHOLDER_SECRETS = frozenset(
    {"changeme", "change_me", "secret", "webhook-secret", "your-webhook-secret", "test", "development"}
)
MIN_SECRET_LENGTH = 16


class SecurityConfigError(Exception):
    """Raised when security configuration is invalid."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        message = "Security configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
        super().__init__(message)


@dataclass
class ValidationResult:
    """Result of security validation."""

    valid: bool
    errors: list[str]
    warnings: list[str]


def validate_webhook_secret(
    secret: str | None, production: bool
) -> tuple[bool, str | None, str | None]:
    """
    Validate GITHUB_WEBHOOK_SECRET.

    Without a secret every delivery is accepted unverified; that is an error
    in production and a warning elsewhere.

    Returns:
        Tuple of (is_valid, error_message, warning_message)
    """
    if not secret:
        if production:
            return False, "GITHUB_WEBHOOK_SECRET is required in production", None
        return (
            True,
            None,
            "GITHUB_WEBHOOK_SECRET not set - webhook signatures will NOT be verified",
        )

    if secret.lower() in PLACEHOLDER_SECRETS:
        if production:
            return False, "GITHUB_WEBHOOK_SECRET cannot be a placeholder value", None
        return True, None, "GITHUB_WEBHOOK_SECRET looks like a placeholder value"

    if len(secret) < MIN_SECRET_LENGTH:
        return (
            True,
            None,
            f"GITHUB_WEBHOOK_SECRET is short ({len(secret)} chars); use at least {MIN_SECRET_LENGTH}",
        )

    return True, None, None


def validate_cors_origins(origins: str, production: bool) -> tuple[bool, str | None, str | None]:
    """
    Validate CORS allowed origins.

    Returns:
        Tuple of (is_valid, error_message, warning_message)
    """
    if not origins:
        return False, "CORS_ALLOWED_ORIGINS is not set", None

    origin_list = [o.strip() for o in origins.split(",")]

    if "*" in origin_list:
        return True, None, "CORS allows all origins (*) - not recommended for production"

    localhost_patterns = ["localhost", "127.0.0.1", "0.0.0.0"]
    has_localhost = any(
        any(pattern in origin for pattern in localhost_patterns) for origin in origin_list
    )
    if has_localhost and production:
        return (
            True,
            None,
            "CORS includes localhost origins - verify this is intentional in production",
        )

    return True, None, None


def validate_database_url(url: str, production: bool) -> tuple[bool, str | None, str | None]:
    """
    Validate the durable tier's database URL.

    Returns:
        Tuple of (is_valid, error_message, warning_message)
    """
    if not url:
        return False, "DATABASE_URL is not set", None

    if url.startswith("sqlite") and production:
        return (
            True,
            None,
            "Using SQLite in production - the durable cache tier is not shared across hosts",
        )

    return True, None, None


def validate_security_config(
    webhook_secret: str | None,
    cors_origins: str | None = None,
    database_url: str | None = None,
    production: bool = False,
    strict: bool = False,
) -> ValidationResult:
    """
    Validate all security configuration.

    Args:
        webhook_secret: GitHub webhook HMAC secret
        cors_origins: CORS allowed origins
        database_url: Database connection URL
        production: Apply production rules
        strict: If True, treat warnings as errors

    Returns:
        ValidationResult with errors and warnings

    Raises:
        SecurityConfigError: If any error is found (or any warning with strict=True)
    """
    checks = [validate_webhook_secret(webhook_secret, production)]
    if cors_origins is not None:
        checks.append(validate_cors_origins(cors_origins, production))
    if database_url is not None:
        checks.append(validate_database_url(database_url, production))

    errors = [error for _, error, _ in checks if error]
    warnings = [warning for _, _, warning in checks if warning]

    for error in errors:
        logger.error("config_validation_error", error=error)
    for warning in warnings:
        logger.warning("config_validation_warning", warning=warning)

    if strict and (errors or warnings):
        raise SecurityConfigError(errors + warnings)
    if errors:
        raise SecurityConfigError(errors)

    return ValidationResult(valid=True, errors=errors, warnings=warnings)

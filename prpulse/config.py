"""
Application configuration using Pydantic settings.

Usage:
    from prpulse.config import get_settings
    settings = get_settings()

For constants, import from prpulse.constants:
    from prpulse.constants import WEBHOOK_INVALIDATING_PR_ACTIONS
"""

import os
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Unified application settings loaded from environment variables and .env file.

    Required for production:
        - GITHUB_WEBHOOK_SECRET (HMAC secret shared with the GitHub webhook)
        - DATABASE_URL (durable cache tier and entity records)
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App settings
    app_name: str = Field(default="PR Pulse", validation_alias="APP_NAME")
    api_prefix: str = "/api"
    debug: bool = Field(default=False, validation_alias="DEBUG")
    server_host: str = Field(default="0.0.0.0", validation_alias="SERVER_HOST")
    server_port: int = Field(default=8000, validation_alias="SERVER_PORT")

    # Database
    database_url: str = Field(default="sqlite:///pr_pulse.db", validation_alias="DATABASE_URL")
    db_pool_size: int = Field(default=10, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, validation_alias="DB_MAX_OVERFLOW")
    db_pool_pre_ping: bool = Field(default=True, validation_alias="DB_POOL_PRE_PING")

    # Cache
    cache_backend: Literal["sql", "redis", "memory"] = Field(
        default="sql", validation_alias="CACHE_BACKEND"
    )
    cache_default_ttl_seconds: int = Field(default=300, validation_alias="CACHE_DEFAULT_TTL_SECONDS")
    cache_hot_ttl_seconds: int = Field(default=60, validation_alias="CACHE_HOT_TTL_SECONDS")
    cache_sweep_interval_seconds: int = Field(default=60, validation_alias="CACHE_SWEEP_INTERVAL_SECONDS")
    cache_hot_sweep_seconds: int = Field(default=30, validation_alias="CACHE_HOT_SWEEP_SECONDS")

    # Redis (only used when CACHE_BACKEND=redis)
    redis_host: str = Field(default="localhost", validation_alias="REDIS_HOST")
    redis_port: int = Field(default=6379, validation_alias="REDIS_PORT")
    redis_db: int = Field(default=0, validation_alias="REDIS_DB")
    redis_password: Optional[str] = Field(default=None, validation_alias="REDIS_PASSWORD")

    # GitHub webhooks
    github_webhook_secret: Optional[str] = Field(default=None, validation_alias="GITHUB_WEBHOOK_SECRET")
    webhook_process_inline: bool = Field(default=False, validation_alias="WEBHOOK_PROCESS_INLINE")

    # Realtime
    realtime_queue_size: int = Field(default=256, validation_alias="REALTIME_QUEUE_SIZE")

    # Request limits (GitHub caps webhook payloads at 25 MB)
    max_request_size_mb: int = Field(default=25, validation_alias="MAX_REQUEST_SIZE_MB")

    # CORS
    cors_allowed_origins: str = Field(default="http://localhost:3000", validation_alias="CORS_ALLOWED_ORIGINS")

    # Scheduler
    enable_scheduler: bool = Field(default=True, validation_alias="ENABLE_SCHEDULER")

    @field_validator("github_webhook_secret")
    @classmethod
    def blank_secret_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty GITHUB_WEBHOOK_SECRET the same as an unset one."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("cache_hot_ttl_seconds", "cache_sweep_interval_seconds", "cache_hot_sweep_seconds")
    @classmethod
    def positive_interval(cls, v: int) -> int:
        if v < 1:
            raise ValueError("cache intervals must be at least 1 second")
        return v

    @property
    def is_production(self) -> bool:
        return os.getenv("ENV", "development").lower() in ("production", "prod")

    @property
    def webhook_secret_bytes(self) -> Optional[bytes]:
        if self.github_webhook_secret is None:
            return None
        return self.github_webhook_secret.encode("utf-8")

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]

    def validate_production_config(self) -> tuple[List[str], List[str]]:
        """
        Validate configuration for production deployment.

        Returns:
            Tuple of (errors, warnings) - errors are fatal, warnings are advisory
        """
        errors = []
        warnings = []

        if self.cache_backend == "redis" and not self.redis_password and self.is_production:
            errors.append("REDIS_PASSWORD is required when CACHE_BACKEND=redis in production")

        if self.cache_backend == "memory" and self.is_production:
            warnings.append(
                "CACHE_BACKEND=memory keeps the durable tier in-process; "
                "invalidations will not reach other instances."
            )

        if self.cache_hot_ttl_seconds > self.cache_default_ttl_seconds:
            warnings.append(
                "CACHE_HOT_TTL_SECONDS exceeds CACHE_DEFAULT_TTL_SECONDS; "
                "hot entries are still capped by their durable expiry."
            )

        return errors, warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


__all__ = ["Settings", "get_settings"]

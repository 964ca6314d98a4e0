"""
Pydantic schemas for request and response validation.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prpulse.constants import PR_STATUSES


class WebhookAck(BaseModel):
    received: bool = True


class ErrorResponse(BaseModel):
    error: str


class CacheStatsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entry_count: int = Field(serialization_alias="entryCount")
    approximate_byte_size: int = Field(serialization_alias="approximateByteSize")


class CacheClearResponse(BaseModel):
    pattern: str
    cleared: int


class CachedPullRequestsResponse(BaseModel):
    repositories: list[str]
    state: str
    pull_requests: list[dict[str, Any]] = Field(serialization_alias="pullRequests")


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    uptime_seconds: float = Field(serialization_alias="uptimeSeconds")
    connected_clients: int = Field(serialization_alias="connectedClients")
    cache_stats: dict[str, int] = Field(serialization_alias="cacheStats")


# =============================================================================
# Realtime client frames
# =============================================================================


class ClientFrame(BaseModel):
    """`{"event": name, "data": ...}` sent by dashboard clients over /ws."""

    event: str = Field(min_length=1)
    data: Any = None


class PrStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pr_id: str = Field(validation_alias="prId", min_length=1)
    status: str

    @field_validator("status")
    @classmethod
    def known_status(cls, v: str) -> str:
        if v not in PR_STATUSES:
            raise ValueError(f"status must be one of {', '.join(PR_STATUSES)}")
        return v

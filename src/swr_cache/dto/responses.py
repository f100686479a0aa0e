"""Response DTOs for the inspection API."""

from typing import Any

from pydantic import BaseModel, Field


class CacheEntryResponse(BaseModel):
    """Response DTO for a single cache entry."""

    key: str = Field(..., description="The resource key")
    status: str = Field(..., description="uninitialized, fetching, ready or errored")
    data: Any = Field(None, description="Last good payload")
    error: dict[str, Any] | None = Field(None, description="Error from the last failed fetch")
    last_updated: float | None = Field(None, description="Unix timestamp of the last data write")
    in_flight: bool = Field(..., description="Whether a fetch is pending")
    subscribers: int = Field(..., description="Number of active subscribers", ge=0)
    armed: bool = Field(..., description="Whether a revalidation timer is scheduled")


class CacheKeysResponse(BaseModel):
    """Response DTO listing cached keys."""

    keys: list[str] = Field(default_factory=list, description="Resource keys with an entry")


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    entries: int = Field(..., description="Number of cache entries", ge=0)
    subscribed_keys: int = Field(..., description="Keys with at least one subscriber", ge=0)
    armed_timers: int = Field(..., description="Scheduled revalidation timers", ge=0)
    in_flight: int = Field(..., description="Pending fetches", ge=0)
    revalidate_interval: float = Field(..., description="Default polling interval in seconds", gt=0)
    metrics: dict[str, float | int] = Field(default_factory=dict)


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'degraded'")
    mirror_healthy: bool = Field(..., description="Whether the mirror backend is reachable")

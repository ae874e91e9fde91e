"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class CacheEntryResponse(BaseModel):
    """Response DTO describing one stored entry."""

    key: str = Field(..., description="The cache key")
    value: Any = Field(None, description="The cached value")
    created_at: float = Field(..., description="When the entry was written (Unix timestamp)")
    expires_at: float = Field(..., description="When the entry goes stale (Unix timestamp)")
    is_expired: bool = Field(..., description="Whether the entry is past its expiry")
    age_seconds: float = Field(..., description="Seconds since the entry was written", ge=0.0)


class InvalidateResponse(BaseModel):
    """Response DTO for invalidating an entry."""

    success: bool = Field(..., description="Whether the operation succeeded")
    key: str = Field(..., description="The invalidated key")
    message: str = Field(..., description="Human-readable status message")


class PurgeResponse(BaseModel):
    """Response DTO for purging expired entries."""

    success: bool = Field(..., description="Whether the operation succeeded")
    removed: int = Field(..., description="Number of entries removed", ge=0)


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    store: str = Field(..., description="Store implementation in use")
    ttl_seconds: float = Field(..., description="Default freshness window", gt=0.0)
    max_attempts: int = Field(..., description="Fetch attempts per call", ge=1)
    enable_cache: bool = Field(..., description="Whether the store is used at all")
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    stale_served: int = Field(..., ge=0)
    fallbacks: int = Field(..., ge=0)
    failures: int = Field(..., ge=0)
    fetch_attempts: int = Field(..., ge=0)
    retries: int = Field(..., ge=0)
    storage_errors: int = Field(..., ge=0)
    decode_errors: int = Field(..., ge=0)
    hit_rate: float = Field(..., description="Fresh hits over lookups", ge=0.0, le=1.0)


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    store_healthy: bool = Field(..., description="Whether the cache store is reachable")

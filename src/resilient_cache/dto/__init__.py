"""Data Transfer Objects for API contracts.

These Pydantic models define the admin API contract. Internal logic uses
the entities package instead.
"""

from .requests import PurgeRequest
from .responses import (
    CacheEntryResponse,
    CacheStatsResponse,
    HealthCheckResponse,
    InvalidateResponse,
    PurgeResponse,
)

__all__ = [
    "PurgeRequest",
    "CacheEntryResponse",
    "CacheStatsResponse",
    "HealthCheckResponse",
    "InvalidateResponse",
    "PurgeResponse",
]

"""HTTP handlers for cache administration.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes and error responses.
"""

from fastapi import HTTPException, status

from resilient_cache.dto import (
    CacheEntryResponse,
    CacheStatsResponse,
    HealthCheckResponse,
    InvalidateResponse,
    PurgeRequest,
    PurgeResponse,
)
from resilient_cache.log import get_logger
from resilient_cache.services import ResilientCache

logger = get_logger(__name__)


class CacheHandler:
    """HTTP handlers for inspecting and managing a ResilientCache.

    Example:
        ```python
        handler = CacheHandler(cache=ResilientCache.create())

        @app.get("/cache/entries/{key:path}", response_model=CacheEntryResponse)
        async def get_entry(key: str):
            return await handler.get_entry(key)
        ```
    """

    def __init__(self, cache: ResilientCache) -> None:
        """Initialize the cache handler.

        Args:
            cache: The cache to administer (required).
        """
        self._cache = cache

    async def get_entry(self, key: str) -> CacheEntryResponse:
        """Handle GET /cache/entries/{key} requests.

        Raises:
            HTTPException: 404 if no entry is stored for the key
        """
        entry = self._cache.peek(key, allow_expired=True)
        if entry is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No cache entry for key {key!r}",
            )

        now = self._cache.clock.now()
        return CacheEntryResponse(
            key=key,
            value=entry.value,
            created_at=entry.created_at,
            expires_at=entry.expires_at,
            is_expired=entry.is_expired(now),
            age_seconds=entry.age(now),
        )

    async def invalidate(self, key: str) -> InvalidateResponse:
        """Handle DELETE /cache/entries/{key} requests."""
        try:
            self._cache.invalidate(key)
        except Exception as e:
            logger.error("invalidate_request_failed", key=key, error=str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to invalidate entry: {e}",
            ) from e

        return InvalidateResponse(
            success=True,
            key=key,
            message="Entry invalidated",
        )

    async def purge(self, request: PurgeRequest) -> PurgeResponse:
        """Handle POST /cache/purge requests."""
        try:
            removed = self._cache.purge_expired(request.keys)
        except Exception as e:
            logger.error("purge_request_failed", error=str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to purge entries: {e}",
            ) from e

        return PurgeResponse(success=True, removed=removed)

    async def get_stats(self) -> CacheStatsResponse:
        """Handle GET /stats requests."""
        try:
            stats = self._cache.get_stats()
            return CacheStatsResponse(
                store=stats["store"],
                ttl_seconds=stats["ttl"],
                max_attempts=stats["max_attempts"],
                enable_cache=stats["enable_cache"],
                hits=stats["hits"],
                misses=stats["misses"],
                stale_served=stats["stale_served"],
                fallbacks=stats["fallbacks"],
                failures=stats["failures"],
                fetch_attempts=stats["fetch_attempts"],
                retries=stats["retries"],
                storage_errors=stats["storage_errors"],
                decode_errors=stats["decode_errors"],
                hit_rate=stats["hit_rate"],
            )
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get stats: {e}",
            ) from e

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests.

        Raises:
            HTTPException: 503 if the store is unreachable
        """
        if not self._cache.is_healthy():
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Cache store is unreachable",
            )
        return HealthCheckResponse(status="healthy", store_healthy=True)

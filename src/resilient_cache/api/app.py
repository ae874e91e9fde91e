"""Admin HTTP API over a shared ResilientCache."""

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from resilient_cache import __version__
from resilient_cache.api.dependencies import HandlerDep, build_lifespan
from resilient_cache.config import get_settings
from resilient_cache.dto import (
    CacheEntryResponse,
    CacheStatsResponse,
    HealthCheckResponse,
    InvalidateResponse,
    PurgeRequest,
    PurgeResponse,
)
from resilient_cache.services import ResilientCache


def create_app(cache: ResilientCache | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        cache: Cache to administer. If None, the lifespan builds one from settings.

    Returns:
        The configured application
    """
    app = FastAPI(
        title="Resilient Cache API",
        description="Inspect and manage a TTL cache with retry and stale fallback",
        version=__version__,
        lifespan=build_lifespan(cache),
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "Resilient Cache API",
            "version": __version__,
            "endpoints": {
                "entries": "/cache/entries/{key}",
                "purge": "/cache/purge",
                "stats": "/stats",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check endpoint."""
        return await handler.health_check()

    @app.get("/stats", response_model=CacheStatsResponse)
    async def stats(handler: HandlerDep) -> CacheStatsResponse:
        """Cache counters and configuration."""
        return await handler.get_stats()

    @app.get("/cache/entries/{key:path}", response_model=CacheEntryResponse)
    async def get_entry(key: str, handler: HandlerDep) -> CacheEntryResponse:
        """Inspect the stored entry for a key, expired or not."""
        return await handler.get_entry(key)

    @app.delete("/cache/entries/{key:path}", response_model=InvalidateResponse)
    async def invalidate_entry(key: str, handler: HandlerDep) -> InvalidateResponse:
        """Invalidate the entry for a key."""
        return await handler.invalidate(key)

    @app.post("/cache/purge", response_model=PurgeResponse)
    async def purge(request: PurgeRequest, handler: HandlerDep) -> PurgeResponse:
        """Remove expired or corrupt entries among the given keys."""
        return await handler.purge(request)

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "resilient_cache.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )

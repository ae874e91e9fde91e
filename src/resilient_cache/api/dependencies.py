"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - No global mutable state
"""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from resilient_cache.config import get_settings
from resilient_cache.handlers import CacheHandler
from resilient_cache.log import configure_logging, get_logger
from resilient_cache.services import ResilientCache

logger = get_logger(__name__)


def get_cache(request: Request) -> ResilientCache:
    """Dependency injection for ResilientCache from app.state.

    Raises:
        RuntimeError: If the cache is not initialized
    """
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        raise RuntimeError("ResilientCache not initialized. Check lifespan setup.")
    return cache


def get_handler(request: Request) -> CacheHandler:
    """Dependency injection for CacheHandler from app.state.

    Raises:
        RuntimeError: If the handler is not initialized
    """
    handler = getattr(request.app.state, "cache_handler", None)
    if handler is None:
        raise RuntimeError("CacheHandler not initialized. Check lifespan setup.")
    return handler


def build_lifespan(cache: ResilientCache | None = None):
    """Create the lifespan context manager for the app.

    Args:
        cache: Cache to serve. If None, one is built from environment settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize the cache and handler, store them in app.state, clean up on shutdown."""
        settings = get_settings()
        configure_logging(settings.log_level, settings.log_json)

        resilient_cache = cache or ResilientCache.create(settings)
        app.state.cache = resilient_cache
        app.state.cache_handler = CacheHandler(cache=resilient_cache)

        logger.info(
            "cache_service_started",
            store=type(resilient_cache.store).__name__,
            ttl=resilient_cache.config.ttl,
            healthy=resilient_cache.is_healthy(),
        )

        yield

        await resilient_cache.aclose()
        del app.state.cache_handler
        del app.state.cache
        logger.info("cache_service_stopped")

    return lifespan


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[CacheHandler, Depends(get_handler)]
CacheDep = Annotated[ResilientCache, Depends(get_cache)]

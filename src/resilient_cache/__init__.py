"""Resilient Cache - TTL caching of async fetches with retry and stale fallback.

This package provides a layered architecture:

Layers:
    - protocols: Interface contracts (KeyValueStore, Clock)
    - repositories: Store implementations (memory, Redis, files)
    - services: The ResilientCache orchestrator
    - adapters: Observable state for UI consumers
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from resilient_cache import CacheConfig, InMemoryStore, ResilientCache

    cache = ResilientCache(store=InMemoryStore(), config=CacheConfig(ttl=300))
    result = await cache.get("habits:list", fetch_habits)
    ```

For HTTP API:
    ```python
    from resilient_cache.api.app import create_app
    ```
"""

__version__ = "0.1.0"

from resilient_cache.adapters import CachedResource, ResourceCollection, resource_factory
from resilient_cache.clock import ManualClock, SystemClock
from resilient_cache.codec import CacheEntryCodec
from resilient_cache.config import CacheConfig, Settings, get_settings
from resilient_cache.entities import CacheEntry, CachedResult
from resilient_cache.errors import (
    CodecError,
    ConfigurationError,
    DecodeError,
    EncodeError,
    NonRetryableError,
    ResilientCacheError,
    StorageError,
)
from resilient_cache.keys import make_key
from resilient_cache.protocols import Clock, Fetcher, KeyValueStore
from resilient_cache.repositories import FileStore, InMemoryStore, RedisStore, create_store
from resilient_cache.retry import RetryPolicy, RetryState
from resilient_cache.services import ResilientCache

__all__ = [
    "__version__",
    # Configuration
    "CacheConfig",
    "Settings",
    "get_settings",
    # Protocols (interfaces)
    "Clock",
    "Fetcher",
    "KeyValueStore",
    # Services
    "ResilientCache",
    "RetryPolicy",
    "RetryState",
    # Adapters
    "CachedResource",
    "ResourceCollection",
    "resource_factory",
    "make_key",
    # Repositories (data access)
    "InMemoryStore",
    "RedisStore",
    "FileStore",
    "create_store",
    # Time
    "SystemClock",
    "ManualClock",
    # Entities and codec
    "CacheEntry",
    "CachedResult",
    "CacheEntryCodec",
    # Errors
    "ResilientCacheError",
    "ConfigurationError",
    "StorageError",
    "CodecError",
    "EncodeError",
    "DecodeError",
    "NonRetryableError",
]

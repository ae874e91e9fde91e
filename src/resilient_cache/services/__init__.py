"""Service layer for business logic.

Services depend on protocols (KeyValueStore, Clock), not concrete
implementations, which keeps them testable with in-memory stores and a
manual clock.

Architecture:
    Handler / Adapter -> Service -> Store
    (HTTP / UI)       -> (Cache) -> (Data Access)

Usage:
    ```python
    from resilient_cache.services import ResilientCache

    cache = ResilientCache.create()
    cache = ResilientCache(store=InMemoryStore(), config=CacheConfig(ttl=60))
    ```
"""

from .cache_service import ResilientCache

__all__ = [
    "ResilientCache",
]

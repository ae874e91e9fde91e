"""Handler layer for HTTP endpoints.

Handlers depend on the cache service, never directly on stores.

Architecture:
    Handler -> Service -> Store
    (HTTP)  -> (Cache) -> (Data Access)
"""

from .cache_handler import CacheHandler

__all__ = [
    "CacheHandler",
]

"""Domain entities for internal representation.

Pure frozen dataclasses shared by the services, stores and adapters.
Serialization lives in the codec module, HTTP contracts in the dto package.
"""

from .cache_entry import CacheEntry
from .cached_result import CachedResult

__all__ = ["CacheEntry", "CachedResult"]

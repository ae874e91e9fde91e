"""Repository layer: KeyValueStore implementations.

Each class satisfies the KeyValueStore protocol through structural typing,
no inheritance needed. The cache service depends on the protocol only.
"""

from resilient_cache.protocols import KeyValueStore

from .factory import create_store
from .file_store import FileStore
from .memory_store import InMemoryStore
from .redis_store import RedisStore

__all__ = [
    "KeyValueStore",
    "FileStore",
    "InMemoryStore",
    "RedisStore",
    "create_store",
]

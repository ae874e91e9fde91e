"""Build the configured KeyValueStore."""

from resilient_cache.config import Settings, get_settings
from resilient_cache.protocols import KeyValueStore

from .file_store import FileStore
from .memory_store import InMemoryStore
from .redis_store import RedisStore


def create_store(settings: Settings | None = None) -> KeyValueStore:
    """Create the store selected by STORE_BACKEND.

    Args:
        settings: Settings to use. Defaults to env settings.

    Returns:
        An InMemoryStore, RedisStore or FileStore
    """
    settings = settings or get_settings()
    if settings.store_backend == "redis":
        return RedisStore.create(settings)
    if settings.store_backend == "file":
        return FileStore.create(settings)
    return InMemoryStore()

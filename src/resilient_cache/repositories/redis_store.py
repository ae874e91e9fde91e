"""Redis implementation of KeyValueStore.

Shares cache entries between processes. Keys are namespaced with a
prefix so several caches can live in one Redis database.
"""

import math

import redis
from redis.exceptions import RedisError

from resilient_cache.config import Settings, get_redis_client, get_settings
from resilient_cache.errors import StorageError


class RedisStore:
    """Redis-backed store.

    This class satisfies the KeyValueStore protocol through structural
    typing - no explicit inheritance needed.

    Entry freshness is decided by the cache from the timestamps inside
    each payload, not by Redis expiry. ``retention`` only garbage-collects
    entries long after they have gone stale, so it must exceed the cache
    TTL or the stale fallback stops working.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        prefix: str | None = None,
        retention: float | None = None,
    ) -> None:
        """Initialize the Redis store.

        Args:
            redis_client: Redis client instance. If None, creates default.
            prefix: Key namespace. Defaults to settings.
            retention: Server-side expiry in seconds. None keeps entries forever.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = prefix if prefix is not None else get_settings().redis_key_prefix
        self._retention = retention

    @classmethod
    def create(cls, settings: Settings | None = None) -> "RedisStore":
        """Factory method to create RedisStore from settings.

        Args:
            settings: Settings to read connection details from. Defaults to env settings.

        Returns:
            Configured RedisStore
        """
        settings = settings or get_settings()
        return cls(
            redis_client=get_redis_client(settings),
            prefix=settings.redis_key_prefix,
            retention=settings.redis_retention,
        )

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}:{key}" if self._prefix else key

    def get(self, key: str) -> str | None:
        try:
            raw = self._client.get(self._full_key(key))
        except RedisError as e:
            raise StorageError(f"Redis GET failed for {key!r}: {e}") from e

        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw  # type: ignore[return-value]

    def set(self, key: str, value: str) -> None:
        ex = math.ceil(self._retention) if self._retention else None
        try:
            self._client.set(self._full_key(key), value, ex=ex)
        except RedisError as e:
            raise StorageError(f"Redis SET failed for {key!r}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._client.delete(self._full_key(key))
        except RedisError as e:
            raise StorageError(f"Redis DEL failed for {key!r}: {e}") from e

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client

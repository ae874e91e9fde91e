import math
import os
from dataclasses import dataclass
from functools import lru_cache

import redis
from dotenv import load_dotenv

from resilient_cache.errors import ConfigurationError

load_dotenv()


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    return float(raw) if raw else None


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Cache
    cache_ttl: float = float(os.getenv("CACHE_TTL_SECONDS", "300"))  # 5 minutes default
    cache_enabled: bool = os.getenv("CACHE_ENABLED", "true").lower() == "true"

    # Retry
    retry_max_attempts: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
    retry_base_delay: float = float(os.getenv("RETRY_BASE_DELAY_SECONDS", "1.0"))
    retry_backoff_factor: float = float(os.getenv("RETRY_BACKOFF_FACTOR", "2"))

    # Store: "memory", "redis" or "file"
    store_backend: str = os.getenv("STORE_BACKEND", "memory")

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")
    redis_key_prefix: str = os.getenv("REDIS_KEY_PREFIX", "resilient_cache")
    # Must outlive cache_ttl, otherwise expired entries vanish before they can serve as fallback
    redis_retention: float | None = _optional_float("REDIS_RETENTION_SECONDS")

    # File store
    file_store_path: str = os.getenv("FILE_STORE_PATH", ".cache/resilient_cache")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = os.getenv("LOG_JSON", "false").lower() == "true"

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "false").lower() == "true"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.store_backend not in ("memory", "redis", "file"):
            raise ConfigurationError(
                f"STORE_BACKEND must be one of [memory, redis, file], got {self.store_backend!r}"
            )

        if self.redis_retention is not None and self.redis_retention <= self.cache_ttl:
            raise ConfigurationError("REDIS_RETENTION_SECONDS must be greater than CACHE_TTL_SECONDS")


@dataclass(frozen=True)
class CacheConfig:
    """Tuning knobs for one ResilientCache.

    Attributes:
        ttl: Seconds an entry stays fresh after it is written.
        max_attempts: Upper bound on fetch attempts per get/refresh call.
        base_delay: Seconds to wait before the first retry.
        backoff_factor: Multiplier applied to the delay after each failed attempt.
        enable_cache: When False the store is never read or written.
    """

    ttl: float = 300.0
    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    enable_cache: bool = True

    def __post_init__(self) -> None:
        if not math.isfinite(self.ttl) or self.ttl <= 0:
            raise ConfigurationError(f"ttl must be a positive finite number, got {self.ttl}")
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if not math.isfinite(self.base_delay) or self.base_delay < 0:
            raise ConfigurationError(f"base_delay must be a finite non-negative number, got {self.base_delay}")
        if not math.isfinite(self.backoff_factor) or self.backoff_factor < 1:
            raise ConfigurationError(f"backoff_factor must be a finite number of at least 1, got {self.backoff_factor}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheConfig":
        """Build a config from environment settings."""
        return cls(
            ttl=settings.cache_ttl,
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            backoff_factor=settings.retry_backoff_factor,
            enable_cache=settings.cache_enabled,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_redis_client(settings: Settings | None = None) -> redis.Redis:
    """Create a Redis client instance."""
    settings = settings or get_settings()
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )

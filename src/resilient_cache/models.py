from dataclasses import dataclass, fields


@dataclass
class CacheMetrics:
    """Track how a ResilientCache is serving its callers."""

    hits: int = 0
    misses: int = 0
    stale_served: int = 0
    fallbacks: int = 0
    failures: int = 0
    fetch_attempts: int = 0
    retries: int = 0
    storage_errors: int = 0
    decode_errors: int = 0

    @property
    def lookups(self) -> int:
        """Number of get calls that consulted the store."""
        return self.hits + self.misses + self.stale_served

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate (fresh hits only)."""
        if self.lookups == 0:
            return 0.0
        return self.hits / self.lookups

    def reset(self) -> None:
        for f in fields(self):
            setattr(self, f.name, 0)

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stale_served": self.stale_served,
            "fallbacks": self.fallbacks,
            "failures": self.failures,
            "fetch_attempts": self.fetch_attempts,
            "retries": self.retries,
            "storage_errors": self.storage_errors,
            "decode_errors": self.decode_errors,
            "hit_rate": self.hit_rate,
        }

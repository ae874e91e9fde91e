"""Cache entry domain entity."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A time-stamped cached value.

    Entries are immutable: a refresh writes a new entry rather than
    updating one in place. An expired entry is stale, not discarded; it
    can still be served when the fetch function fails.

    Attributes:
        value: The cached result, opaque to the cache
        created_at: When the entry was written (epoch seconds)
        expires_at: created_at + ttl
    """

    value: T
    created_at: float
    expires_at: float

    def __post_init__(self) -> None:
        if self.expires_at < self.created_at:
            raise ValueError(
                f"expires_at ({self.expires_at}) must not precede created_at ({self.created_at})"
            )

    @classmethod
    def create(cls, value: T, now: float, ttl: float) -> "CacheEntry[T]":
        """Build an entry written at ``now`` that stays fresh for ``ttl`` seconds."""
        return cls(value=value, created_at=now, expires_at=now + ttl)

    def is_expired(self, now: float) -> bool:
        """An entry is live up to and including its expiry instant."""
        return now > self.expires_at

    def age(self, now: float) -> float:
        """Seconds elapsed since the entry was written."""
        return max(0.0, now - self.created_at)

"""Consumer-facing result of one get/refresh call."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CachedResult(Generic[T]):
    """Observable state handed to the UI layer.

    Attributes:
        data: The value, or None when nothing is available
        loading: True while a fetch is in progress
        error: Message of the last fetch failure, if any
        is_from_cache: True when data came from the store rather than a
            fetch that just completed
    """

    data: T | None = None
    loading: bool = False
    error: str | None = None
    is_from_cache: bool = False

    @property
    def is_degraded(self) -> bool:
        """Stale data served because the live fetch failed."""
        return self.is_from_cache and self.error is not None

    @property
    def is_fresh(self) -> bool:
        """Data from a fetch that just succeeded."""
        return not self.is_from_cache and self.error is None and not self.loading

    @classmethod
    def pending(cls, data: T | None = None, is_from_cache: bool = False) -> "CachedResult[T]":
        """Loading state, optionally keeping the data currently on screen."""
        return cls(data=data, loading=True, is_from_cache=is_from_cache)

    @classmethod
    def fetched(cls, data: T) -> "CachedResult[T]":
        return cls(data=data, is_from_cache=False)

    @classmethod
    def cached(cls, data: T, error: str | None = None) -> "CachedResult[T]":
        return cls(data=data, error=error, is_from_cache=True)

    @classmethod
    def failed(cls, error: str) -> "CachedResult[T]":
        return cls(data=None, error=error, is_from_cache=False)

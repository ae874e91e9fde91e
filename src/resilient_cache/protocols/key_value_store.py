"""Key-value store protocol.

Defines the storage medium behind the cache. Implementations can include:
- An in-memory dict (tests, single process)
- Redis (shared between processes)
- A directory of files (durable across restarts)
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

# Zero-argument coroutine function producing a fresh value
Fetcher = Callable[[], Awaitable[T]]


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for string key-value stores.

    All operations are synchronous and may raise. Callers must treat any
    failure as "no value available" rather than as fatal. Writes to one
    key never affect another key.

    Example:
        ```python
        store: KeyValueStore = InMemoryStore()
        store.set("habits:list", '{"value": []}')
        store.get("habits:list")
        ```
    """

    def get(self, key: str) -> str | None:
        """Return the stored string, or None if the key is absent.

        Args:
            key: The storage key

        Returns:
            The raw stored value or None
        """
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous value for the key.

        Args:
            key: The storage key
            value: The serialized payload
        """
        ...

    def remove(self, key: str) -> None:
        """Delete the key. Removing an absent key is not an error.

        Args:
            key: The storage key
        """
        ...

"""Protocol interfaces for swappable implementations.

Protocols use structural typing, so any object with matching methods
satisfies them:
- KeyValueStore: in-memory dict, Redis, files, ...
- Clock: wall clock in production, a manual clock in tests

Usage:
    ```python
    from resilient_cache.protocols import Clock, KeyValueStore

    store: KeyValueStore = InMemoryStore()
    store: KeyValueStore = RedisStore(client)
    ```
"""

from .clock import Clock
from .key_value_store import Fetcher, KeyValueStore

__all__ = [
    "Clock",
    "Fetcher",
    "KeyValueStore",
]

"""Consumer adapter exposing cache results as observable state.

A CachedResource binds one cache key and fetch function to the shape
the UI layer consumes: data, loading, error, is_from_cache, refresh()
and clear_cache(). Views subscribe to it and re-render on change.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import replace
from typing import Any, Generic, TypeVar

from resilient_cache.entities import CachedResult
from resilient_cache.keys import make_key
from resilient_cache.log import get_logger
from resilient_cache.protocols import Fetcher
from resilient_cache.services import ResilientCache

T = TypeVar("T")

Listener = Callable[[CachedResult[T]], None]

logger = get_logger(__name__)


class CachedResource(Generic[T]):
    """Observable view of one cached query.

    Listeners only hear about real state changes. When a new result
    carries data equal to what is already held, the held object is kept,
    so downstream code comparing by identity does not recompute.

    Example:
        ```python
        habits = CachedResource(cache, "habits:list", backend.list_habits)
        unsubscribe = habits.subscribe(render)
        await habits.load()
        ...
        await habits.refresh()
        ```
    """

    def __init__(
        self,
        cache: ResilientCache,
        key: str,
        fetch: Fetcher[T],
        ttl: float | None = None,
        *,
        initial_loading: bool = False,
        stale_while_revalidate: bool = False,
        timeout: float | None = None,
    ) -> None:
        """Initialize the resource.

        Args:
            cache: Shared cache instance (required).
            key: Cache key of the query.
            fetch: Zero-argument coroutine function producing the value.
            ttl: Freshness window in seconds. Defaults to the cache config.
            initial_loading: Report loading=True before the first load.
            stale_while_revalidate: Serve expired data while refreshing it.
                The refreshed result is published once it arrives.
            timeout: Seconds after which no further retry is started.
        """
        self._cache = cache
        self._key = key
        self._fetch = fetch
        self._ttl = ttl
        self._swr = stale_while_revalidate
        self._timeout = timeout
        self._state: CachedResult[T] = CachedResult(loading=initial_loading)
        self._listeners: list[Listener[T]] = []
        self._generation = 0

    async def load(self) -> CachedResult[T]:
        """Read through the cache, fetching only when needed."""
        return await self._run(self._cache.get, revalidate=self._swr)

    async def refresh(self) -> CachedResult[T]:
        """Fetch a new value, bypassing any live entry."""
        return await self._run(self._cache.refresh)

    def clear_cache(self) -> None:
        """Drop the stored entry. The state on screen is left untouched."""
        self._cache.invalidate(self._key)

    async def set_key(self, key: str, fetch: Fetcher[T] | None = None) -> CachedResult[T]:
        """Point the resource at another query and load it.

        Args:
            key: The new cache key
            fetch: New fetch function for the key, if it changed too

        Returns:
            The state after loading; unchanged when the key is the same
        """
        if key == self._key and fetch is None:
            return self._state

        self._key = key
        if fetch is not None:
            self._fetch = fetch
        # Data of the previous key must not be shown for the new one
        self._publish(CachedResult())
        return await self.load()

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        """Register a listener called with every new state.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _run(
        self,
        operation: Callable[..., Awaitable[CachedResult[T]]],
        revalidate: bool = False,
    ) -> CachedResult[T]:
        self._generation += 1
        generation = self._generation
        key = self._key
        previous = self._state

        def on_fetch_start() -> None:
            if generation == self._generation:
                self._publish(CachedResult.pending(self._state.data, self._state.is_from_cache))

        def on_revalidated(result: CachedResult[T]) -> None:
            if generation != self._generation:
                logger.debug("discarded_outdated_revalidation", key=key)
                return
            self._publish(result)

        options: dict[str, Any] = {}
        if revalidate:
            options = {"stale_while_revalidate": True, "on_revalidated": on_revalidated}

        try:
            result = await operation(
                key,
                self._fetch,
                self._ttl,
                timeout=self._timeout,
                on_fetch_start=on_fetch_start,
                **options,
            )
        except asyncio.CancelledError:
            if generation == self._generation:
                self._publish(replace(previous, loading=False))
            raise

        # A later load or set_key superseded this call
        if generation != self._generation:
            logger.debug("discarded_outdated_result", key=key)
            return self._state

        self._publish(result)
        return self._state

    def _publish(self, result: CachedResult[T]) -> None:
        current = self._state
        if (
            result.data is not None
            and result.data is not current.data
            and result.data == current.data
        ):
            result = replace(result, data=current.data)

        if result == current:
            return

        self._state = result
        for listener in list(self._listeners):
            listener(result)

    @property
    def key(self) -> str:
        return self._key

    @property
    def state(self) -> CachedResult[T]:
        return self._state

    @property
    def data(self) -> T | None:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def is_from_cache(self) -> bool:
        return self._state.is_from_cache


def resource_factory(
    cache: ResilientCache,
    key: str,
    fetch: Fetcher[T],
    **defaults: Any,
) -> Callable[..., CachedResource[T]]:
    """Pre-configure resources for one endpoint.

    Keyword overrides passed to the returned callable win over the
    defaults given here, including ``key``.

    Example:
        ```python
        tags_resource = resource_factory(cache, "app:tags", backend.list_tags, ttl=600)
        tags = tags_resource()
        short_lived = tags_resource(ttl=30)
        ```
    """

    def build(**overrides: Any) -> CachedResource[T]:
        options = {**defaults, **overrides}
        resource_key = options.pop("key", key)
        return CachedResource(cache, resource_key, fetch, **options)

    return build


class ResourceCollection(Mapping[str, CachedResource[Any]]):
    """Several resources sharing one key namespace.

    Each endpoint ``name`` is cached under ``namespace:name``.
    """

    def __init__(
        self,
        cache: ResilientCache,
        endpoints: Mapping[str, Fetcher[Any]],
        namespace: str = "app",
        **options: Any,
    ) -> None:
        self._namespace = namespace
        self._resources: dict[str, CachedResource[Any]] = {
            name: CachedResource(cache, make_key(namespace, name), fetch, **options)
            for name, fetch in endpoints.items()
        }

    def __getitem__(self, name: str) -> CachedResource[Any]:
        return self._resources[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    async def load_all(self) -> dict[str, CachedResult[Any]]:
        """Load every resource concurrently."""
        names = list(self._resources)
        results = await asyncio.gather(*(self._resources[name].load() for name in names))
        return dict(zip(names, results))

    async def refresh_all(self) -> dict[str, CachedResult[Any]]:
        """Refresh every resource concurrently."""
        names = list(self._resources)
        results = await asyncio.gather(*(self._resources[name].refresh() for name in names))
        return dict(zip(names, results))

    def clear_all(self) -> None:
        for resource in self._resources.values():
            resource.clear_cache()

    @property
    def namespace(self) -> str:
        return self._namespace

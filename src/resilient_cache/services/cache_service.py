"""Resilient cache service.

Orchestrates the store (via the codec), the retry policy and the clock:

    get -> live entry?  -> return it, no fetch
        -> otherwise    -> fetch under retry policy
                           -> success:   persist, return fresh value
                           -> exhausted: return expired entry if any, else error

get and refresh never raise for fetch, storage or codec failures. They
always resolve to a CachedResult.
"""

import asyncio
import math
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from tenacity import AsyncRetrying, RetryCallState

from resilient_cache.clock import SystemClock
from resilient_cache.codec import CacheEntryCodec
from resilient_cache.config import CacheConfig, Settings, get_settings
from resilient_cache.entities import CacheEntry, CachedResult
from resilient_cache.errors import CodecError, ConfigurationError, DecodeError, error_message
from resilient_cache.log import get_logger
from resilient_cache.models import CacheMetrics
from resilient_cache.protocols import Clock, Fetcher, KeyValueStore
from resilient_cache.repositories import create_store
from resilient_cache.retry import RetryPolicy, RetryState

T = TypeVar("T")

logger = get_logger(__name__)


class ResilientCache:
    """Keyed cache of fetch results with TTL, retry and stale fallback.

    One instance is meant to be created per application and handed to
    every consumer, so they all share the same store.

    Example:
        ```python
        from resilient_cache.repositories import InMemoryStore
        from resilient_cache.services import ResilientCache

        cache = ResilientCache(store=InMemoryStore())
        result = await cache.get("habits:list", fetch_habits)
        if result.is_degraded:
            show_banner(result.error)
        ```
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: CacheConfig | None = None,
        clock: Clock | None = None,
        codec: CacheEntryCodec | None = None,
        retry_policy: RetryPolicy | None = None,
        dedupe_in_flight: bool = False,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Key-value store holding the encoded entries (required).
            config: TTL, retry and enable flags. Defaults to CacheConfig().
            clock: Time source. Defaults to the system clock.
            codec: Entry serializer. Defaults to the JSON codec.
            retry_policy: Overrides the policy derived from config.
            dedupe_in_flight: Let overlapping fetches for one key share one outcome.
        """
        self._store = store
        self._config = config or CacheConfig()
        self._clock = clock or SystemClock()
        self._codec = codec or CacheEntryCodec()
        self._retry = retry_policy or RetryPolicy.from_config(self._config)
        self._dedupe = dedupe_in_flight
        self._in_flight: dict[str, asyncio.Future[CachedResult[Any]]] = {}
        self._background: set[asyncio.Future[CachedResult[Any]]] = set()
        self._metrics = CacheMetrics()

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        store: KeyValueStore | None = None,
        clock: Clock | None = None,
        dedupe_in_flight: bool = False,
    ) -> "ResilientCache":
        """Factory method building a cache from environment settings.

        Args:
            settings: Settings to use. Defaults to env settings.
            store: Store to use. Defaults to the backend named by STORE_BACKEND.
            clock: Time source. Defaults to the system clock.
            dedupe_in_flight: See __init__.

        Returns:
            Configured ResilientCache
        """
        settings = settings or get_settings()
        return cls(
            store=store if store is not None else create_store(settings),
            config=CacheConfig.from_settings(settings),
            clock=clock,
            dedupe_in_flight=dedupe_in_flight,
        )

    async def get(
        self,
        key: str,
        fetch: Fetcher[T],
        ttl: float | None = None,
        *,
        timeout: float | None = None,
        stale_while_revalidate: bool = False,
        on_fetch_start: Callable[[], None] | None = None,
        on_revalidated: Callable[[CachedResult[T]], None] | None = None,
    ) -> CachedResult[T]:
        """Return the cached value for key, fetching it when missing or expired.

        Args:
            key: Cache key identifying one logical query
            fetch: Zero-argument coroutine function producing the value
            ttl: Freshness window in seconds. Defaults to config.ttl.
            timeout: Seconds after which no further retry is started
            stale_while_revalidate: Serve an expired entry at once and
                refresh it in the background
            on_fetch_start: Called when the cache short-circuit did not
                apply and fetching begins
            on_revalidated: Receives the outcome of a background refresh
                started by stale_while_revalidate

        Returns:
            CachedResult describing the outcome
        """
        ttl = self._resolve_ttl(ttl)

        if self._config.enable_cache:
            entry = self._read(key)
            if entry is not None:
                if not entry.is_expired(self._clock.now()):
                    self._metrics.hits += 1
                    logger.debug("cache_hit", key=key)
                    return CachedResult.cached(entry.value)

                if stale_while_revalidate:
                    self._metrics.stale_served += 1
                    logger.info("serving_stale_while_revalidating", key=key)
                    self._revalidate_in_background(key, fetch, ttl, on_revalidated)
                    return CachedResult.cached(entry.value)

            self._metrics.misses += 1
            logger.debug("cache_miss", key=key)

        return await self._load(key, fetch, ttl, timeout, on_fetch_start)

    async def refresh(
        self,
        key: str,
        fetch: Fetcher[T],
        ttl: float | None = None,
        *,
        timeout: float | None = None,
        on_fetch_start: Callable[[], None] | None = None,
    ) -> CachedResult[T]:
        """Fetch a new value regardless of any live entry.

        Still falls back to the stored entry when every attempt fails.
        """
        ttl = self._resolve_ttl(ttl)
        logger.debug("cache_refresh", key=key)
        return await self._load(key, fetch, ttl, timeout, on_fetch_start)

    def invalidate(self, key: str) -> None:
        """Remove the entry so the next get behaves as a cold cache."""
        if not self._config.enable_cache:
            return
        if self._discard(key):
            logger.info("cache_invalidated", key=key)

    def peek(self, key: str, allow_expired: bool = False) -> CacheEntry[Any] | None:
        """Return the stored entry without fetching.

        Args:
            key: Cache key
            allow_expired: Also return entries past their expiry

        Returns:
            The decoded entry, or None
        """
        if not self._config.enable_cache:
            return None
        entry = self._read(key)
        if entry is None:
            return None
        if not allow_expired and entry.is_expired(self._clock.now()):
            return None
        return entry

    def purge_expired(self, keys: Iterable[str]) -> int:
        """Delete expired or corrupt entries among the given keys.

        Returns:
            Number of entries removed
        """
        if not self._config.enable_cache:
            return 0

        now = self._clock.now()
        removed = 0
        for key in keys:
            try:
                raw = self._store.get(key)
            except Exception as e:
                self._metrics.storage_errors += 1
                logger.warning("cache_read_failed", key=key, error=str(e))
                continue
            if raw is None:
                continue

            try:
                expired = self._codec.decode(raw).is_expired(now)
            except DecodeError:
                expired = True

            if expired and self._discard(key):
                removed += 1

        if removed:
            logger.info("cache_purged", removed=removed)
        return removed

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with counters and the active configuration
        """
        return {
            "store": type(self._store).__name__,
            "ttl": self._config.ttl,
            "max_attempts": self._retry.max_attempts,
            "base_delay": self._retry.base_delay,
            "backoff_factor": self._retry.backoff_factor,
            "enable_cache": self._config.enable_cache,
            "dedupe_in_flight": self._dedupe,
            "in_flight": len(self._in_flight),
            "background_tasks": len(self._background),
            **self._metrics.to_dict(),
        }

    def is_healthy(self) -> bool:
        """Check whether the store is reachable.

        Returns:
            True if the store answers, False otherwise
        """
        health_check = getattr(self._store, "health_check", None)
        if health_check is not None:
            return bool(health_check())
        try:
            self._store.get("__health__")
        except Exception:
            return False
        return True

    async def drain(self) -> None:
        """Wait for pending background revalidations to finish."""
        while True:
            pending = [task for task in self._background if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel pending background revalidations."""
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*list(self._background), return_exceptions=True)
        self._background.clear()

    async def _load(
        self,
        key: str,
        fetch: Fetcher[T],
        ttl: float,
        timeout: float | None,
        on_fetch_start: Callable[[], None] | None,
    ) -> CachedResult[T]:
        if on_fetch_start is not None:
            on_fetch_start()

        if not self._dedupe:
            return await self._fetch_with_retry(key, fetch, ttl, timeout)

        future = self._in_flight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._fetch_with_retry(key, fetch, ttl, timeout))
            self._in_flight[key] = future
            future.add_done_callback(lambda done, key=key: self._forget_in_flight(key, done))
        else:
            logger.debug("joined_in_flight_fetch", key=key)

        # Shielded so one cancelled caller does not abort the fetch for the others
        return await asyncio.shield(future)

    async def _fetch_with_retry(
        self,
        key: str,
        fetch: Fetcher[T],
        ttl: float,
        timeout: float | None,
    ) -> CachedResult[T]:
        state = RetryState()
        deadline = self._clock.now() + timeout if timeout is not None else None

        def count_attempt(retry_state: RetryCallState) -> None:
            state.attempt = retry_state.attempt_number
            self._metrics.fetch_attempts += 1

        def should_retry(retry_state: RetryCallState) -> bool:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            # Cancellation and other BaseExceptions end the loop and propagate
            if not isinstance(error, Exception):
                return False
            return self._retry.should_retry(retry_state.attempt_number, error)

        def backoff(retry_state: RetryCallState) -> float:
            return self._retry.delay_for(retry_state.attempt_number)

        def past_deadline(retry_state: RetryCallState) -> bool:
            if deadline is None:
                return False
            if self._clock.now() + backoff(retry_state) <= deadline:
                return False
            logger.warning(
                "fetch_deadline_exceeded",
                key=key,
                attempt=retry_state.attempt_number,
                error=error_message(retry_state.outcome.exception()),
            )
            return True

        def log_retry(retry_state: RetryCallState) -> None:
            self._metrics.retries += 1
            logger.info(
                "fetch_retry_scheduled",
                key=key,
                attempt=retry_state.attempt_number,
                delay=retry_state.next_action.sleep,
                error=error_message(retry_state.outcome.exception()),
            )

        retrying = AsyncRetrying(
            retry=should_retry,
            stop=past_deadline,
            wait=backoff,
            sleep=self._clock.sleep,
            before=count_attempt,
            before_sleep=log_retry,
            reraise=True,
        )

        try:
            value = await retrying(fetch)
        except Exception as e:
            state.record_failure(e)
            return self._fallback(key, state)

        self._write(key, value, ttl)
        return CachedResult.fetched(value)

    def _fallback(self, key: str, state: RetryState) -> CachedResult[Any]:
        message = error_message(state.last_error) if state.last_error else "Request failed"

        if self._config.enable_cache:
            entry = self._read(key)
            if entry is not None:
                self._metrics.fallbacks += 1
                logger.warning(
                    "serving_stale_after_failure",
                    key=key,
                    attempts=state.attempt,
                    age=entry.age(self._clock.now()),
                    error=message,
                )
                return CachedResult.cached(entry.value, error=message)

        self._metrics.failures += 1
        logger.error("fetch_failed", key=key, attempts=state.attempt, error=message)
        return CachedResult.failed(message)

    def _revalidate_in_background(
        self,
        key: str,
        fetch: Fetcher[T],
        ttl: float,
        on_revalidated: Callable[[CachedResult[T]], None] | None,
    ) -> None:
        task = asyncio.ensure_future(self._load(key, fetch, ttl, None, None))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        if on_revalidated is not None:
            task.add_done_callback(lambda done: self._report_revalidation(done, on_revalidated))

    @staticmethod
    def _report_revalidation(
        task: asyncio.Future[CachedResult[Any]],
        on_revalidated: Callable[[CachedResult[Any]], None],
    ) -> None:
        if task.cancelled() or task.exception() is not None:
            return
        on_revalidated(task.result())

    def _forget_in_flight(self, key: str, future: asyncio.Future[CachedResult[Any]]) -> None:
        if self._in_flight.get(key) is future:
            del self._in_flight[key]

    def _read(self, key: str) -> CacheEntry[Any] | None:
        """Decode the stored entry, treating any failure as absent."""
        try:
            raw = self._store.get(key)
        except Exception as e:
            self._metrics.storage_errors += 1
            logger.warning("cache_read_failed", key=key, error=str(e))
            self._discard(key)
            return None

        if raw is None:
            return None

        try:
            return self._codec.decode(raw)
        except DecodeError as e:
            self._metrics.decode_errors += 1
            logger.warning("cache_decode_failed", key=key, error=str(e))
            self._discard(key)
            return None

    def _write(self, key: str, value: Any, ttl: float) -> None:
        if not self._config.enable_cache:
            return

        entry = CacheEntry.create(value, now=self._clock.now(), ttl=ttl)
        try:
            self._store.set(key, self._codec.encode(entry))
        except CodecError as e:
            self._metrics.storage_errors += 1
            logger.warning("cache_encode_failed", key=key, error=str(e))
        except Exception as e:
            self._metrics.storage_errors += 1
            logger.warning("cache_write_failed", key=key, error=str(e))

    def _discard(self, key: str) -> bool:
        try:
            self._store.remove(key)
        except Exception as e:
            self._metrics.storage_errors += 1
            logger.warning("cache_remove_failed", key=key, error=str(e))
            return False
        return True

    def _resolve_ttl(self, ttl: float | None) -> float:
        if ttl is None:
            return self._config.ttl
        if not math.isfinite(ttl) or ttl <= 0:
            raise ConfigurationError(f"ttl must be a positive finite number, got {ttl}")
        return ttl

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry

    @property
    def metrics(self) -> CacheMetrics:
        return self._metrics

    @property
    def store(self) -> KeyValueStore:
        """Get the underlying store (for testing)."""
        return self._store

    @property
    def clock(self) -> Clock:
        return self._clock

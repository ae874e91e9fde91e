"""Tests for the ResilientCache orchestrator."""

import asyncio
import json
import math

import pytest
from conftest import T0, BrokenStore, ScriptedFetch

from resilient_cache.config import CacheConfig
from resilient_cache.errors import ConfigurationError, NonRetryableError, StorageError
from resilient_cache.retry import RetryPolicy
from resilient_cache.services import ResilientCache


@pytest.mark.asyncio
class TestCacheHits:
    async def test_live_entry_short_circuits_fetch(self, cache, seed):
        seed("habits:list", ["run", "read"])
        fetch = ScriptedFetch(["other"])

        result = await cache.get("habits:list", fetch)

        assert fetch.calls == 0
        assert result.data == ["run", "read"]
        assert result.is_from_cache is True
        assert result.loading is False
        assert result.error is None

    async def test_second_get_is_served_from_cache(self, cache):
        fetch = ScriptedFetch(["run", "read"])

        first = await cache.get("habits:list", fetch, ttl=300.0)
        second = await cache.get("habits:list", fetch, ttl=300.0)

        assert first.data == ["run", "read"]
        assert first.is_from_cache is False
        assert first.loading is False
        assert second.data == ["run", "read"]
        assert second.is_from_cache is True
        assert fetch.calls == 1

    async def test_entry_is_valid_until_expiry_and_stale_after(self, cache, clock):
        await cache.get("moods", ScriptedFetch("v1"), ttl=5.0)
        fetch = ScriptedFetch("v2")

        clock.advance(4.999)
        before = await cache.get("moods", fetch, ttl=5.0)
        assert before.data == "v1"
        assert fetch.calls == 0

        clock.advance(0.002)
        after = await cache.get("moods", fetch, ttl=5.0)
        assert after.data == "v2"
        assert after.is_from_cache is False
        assert fetch.calls == 1

    async def test_entry_is_valid_exactly_at_expiry(self, cache, clock):
        await cache.get("tasks", ScriptedFetch("v1"), ttl=5.0)
        clock.advance(5.0)

        result = await cache.get("tasks", ScriptedFetch("v2"), ttl=5.0)

        assert result.data == "v1"

    async def test_on_fetch_start_only_fires_on_miss(self, cache, seed):
        seed("hit", 1)
        started = []

        await cache.get("hit", ScriptedFetch(2), on_fetch_start=lambda: started.append("hit"))
        await cache.get("miss", ScriptedFetch(2), on_fetch_start=lambda: started.append("miss"))

        assert started == ["miss"]


@pytest.mark.asyncio
class TestRetry:
    async def test_fails_twice_then_succeeds(self, cache, clock):
        fetch = ScriptedFetch(RuntimeError("boom"), RuntimeError("boom"), ["ok"])

        result = await cache.get("journal", fetch)

        assert fetch.calls == 3
        assert clock.sleeps == [1.0, 2.0]
        assert result.data == ["ok"]
        assert result.is_from_cache is False
        assert result.error is None
        assert cache.metrics.retries == 2

    async def test_exhaustion_falls_back_to_expired_entry(self, cache, seed):
        seed("routines", ["stretch"], ttl=300.0, age=600.0)
        fetch = ScriptedFetch(ConnectionError("network down"))

        result = await cache.get("routines", fetch)

        assert fetch.calls == 3
        assert result.data == ["stretch"]
        assert result.is_from_cache is True
        assert result.error == "network down"
        assert result.is_degraded
        assert cache.metrics.fallbacks == 1

    async def test_exhaustion_without_entry_reports_error(self, cache):
        fetch = ScriptedFetch(ConnectionError("network down"))

        result = await cache.get("routines", fetch)

        assert result.data is None
        assert result.error == "network down"
        assert result.is_from_cache is False
        assert result.loading is False
        assert cache.metrics.failures == 1

    async def test_error_without_message_uses_exception_name(self, cache):
        result = await cache.get("k", ScriptedFetch(TimeoutError()))

        assert result.error == "TimeoutError"

    async def test_non_retryable_error_stops_immediately(self, cache, clock):
        fetch = ScriptedFetch(NonRetryableError("unauthorized"), "never")

        result = await cache.get("profile", fetch)

        assert fetch.calls == 1
        assert clock.sleeps == []
        assert result.error == "unauthorized"

    async def test_classifier_stops_retries(self, store, config, clock):
        policy = RetryPolicy(
            max_attempts=5,
            is_retryable=lambda error: not isinstance(error, PermissionError),
        )
        cache = ResilientCache(store=store, config=config, clock=clock, retry_policy=policy)
        fetch = ScriptedFetch(PermissionError("forbidden"))

        await cache.get("profile", fetch)

        assert fetch.calls == 1

    async def test_timeout_stops_before_overrunning_sleep(self, store, clock, seed):
        config = CacheConfig(max_attempts=5, base_delay=1.0, backoff_factor=2.0)
        cache = ResilientCache(store=store, config=config, clock=clock)
        seed("calendar", ["event"], age=600.0)
        fetch = ScriptedFetch(RuntimeError("slow backend"))

        result = await cache.get("calendar", fetch, timeout=2.5)

        assert fetch.calls == 2
        assert clock.sleeps == [1.0]
        assert result.data == ["event"]
        assert result.error == "slow backend"

    async def test_every_attempt_and_retry_is_counted(self, cache):
        fetch = ScriptedFetch(RuntimeError("boom"), RuntimeError("boom"), "ok")

        await cache.get("journal", fetch)

        assert cache.metrics.fetch_attempts == 3
        assert cache.metrics.retries == 2

    async def test_cancellation_propagates(self, cache):
        started = asyncio.Event()

        async def fetch():
            started.set()
            await asyncio.Event().wait()

        task = asyncio.create_task(cache.get("k", fetch))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


@pytest.mark.asyncio
class TestRefreshAndInvalidate:
    async def test_refresh_bypasses_live_entry(self, cache, seed, store, codec):
        seed("tags", ["old"])
        fetch = ScriptedFetch(["new"])

        result = await cache.refresh("tags", fetch)

        assert fetch.calls == 1
        assert result.data == ["new"]
        assert result.is_from_cache is False
        assert codec.decode(store.get("tags")).value == ["new"]

    async def test_refresh_falls_back_on_failure(self, cache, seed):
        seed("tags", ["old"])

        result = await cache.refresh("tags", ScriptedFetch(RuntimeError("down")))

        assert result.data == ["old"]
        assert result.is_from_cache is True
        assert result.error == "down"

    async def test_refresh_after_get_overwrites_entry(self, cache, clock):
        await cache.get("habits", ScriptedFetch("first"))
        clock.advance(10)
        await cache.refresh("habits", ScriptedFetch("second"))

        entry = cache.peek("habits")
        assert entry.value == "second"
        assert entry.created_at == T0 + 10

    async def test_invalidate_makes_next_get_cold(self, cache, store):
        fetch = ScriptedFetch("v1", "v2")
        await cache.get("k", fetch)

        cache.invalidate("k")

        assert "k" not in store
        result = await cache.get("k", fetch)
        assert fetch.calls == 2
        assert result.data == "v2"

    async def test_invalid_ttl_fails_fast(self, cache):
        with pytest.raises(ConfigurationError):
            await cache.get("k", ScriptedFetch(1), ttl=0)

    @pytest.mark.parametrize("ttl", [math.inf, math.nan])
    async def test_non_finite_ttl_fails_fast(self, cache, store, ttl):
        with pytest.raises(ConfigurationError):
            await cache.get("k", ScriptedFetch(1), ttl=ttl)

        assert len(store) == 0


@pytest.mark.asyncio
class TestStorageFailures:
    async def test_corrupt_entry_is_treated_as_absent_and_replaced(self, cache, store, codec):
        store.set("k", "{not json")
        fetch = ScriptedFetch("fresh")

        result = await cache.get("k", fetch)

        assert fetch.calls == 1
        assert result.data == "fresh"
        assert codec.decode(store.get("k")).value == "fresh"
        assert cache.metrics.decode_errors == 1

    async def test_corrupt_entry_is_removed_even_without_fetch(self, cache, store):
        store.set("k", '{"value": 1}')

        assert cache.peek("k") is None
        assert "k" not in store

    async def test_broken_store_still_serves_fetched_data(self, config, clock):
        cache = ResilientCache(store=BrokenStore(StorageError("quota exceeded")), config=config, clock=clock)

        result = await cache.get("k", ScriptedFetch("value"))

        assert result.data == "value"
        assert result.error is None
        assert cache.metrics.storage_errors >= 2

    async def test_broken_store_and_failing_fetch_reports_error(self, config, clock):
        cache = ResilientCache(store=BrokenStore(OSError("disk gone")), config=config, clock=clock)

        result = await cache.get("k", ScriptedFetch(RuntimeError("down")))

        assert result.data is None
        assert result.error == "down"

    async def test_unserializable_value_is_returned_but_not_stored(self, cache, store):
        value = object()

        result = await cache.get("k", ScriptedFetch(value))

        assert result.data is value
        assert "k" not in store

    async def test_expired_legacy_entry_is_refetched(self, cache, store):
        store.set(
            "journal",
            json.dumps({"data": ["old"], "timestamp": (T0 - 600) * 1000, "expiresAt": (T0 - 300) * 1000}),
        )
        fetch = ScriptedFetch(["new"])

        result = await cache.get("journal", fetch)

        assert fetch.calls == 1
        assert result.data == ["new"]
        assert result.is_from_cache is False

    async def test_live_legacy_entry_is_served(self, cache, store):
        store.set(
            "journal",
            json.dumps({"data": ["old"], "timestamp": (T0 - 10) * 1000, "expiresAt": (T0 + 290) * 1000}),
        )
        fetch = ScriptedFetch(["new"])

        result = await cache.get("journal", fetch)

        assert fetch.calls == 0
        assert result.data == ["old"]
        assert result.is_from_cache is True


@pytest.mark.asyncio
class TestCacheDisabled:
    async def test_store_is_never_used(self, store, clock):
        cache = ResilientCache(store=store, config=CacheConfig(enable_cache=False), clock=clock)
        fetch = ScriptedFetch("a", "b")

        first = await cache.get("k", fetch)
        second = await cache.get("k", fetch)

        assert (first.data, second.data) == ("a", "b")
        assert fetch.calls == 2
        assert len(store) == 0

    async def test_failure_has_no_fallback(self, store, clock, seed):
        seed("k", "cached")
        cache = ResilientCache(store=store, config=CacheConfig(enable_cache=False), clock=clock)

        result = await cache.get("k", ScriptedFetch(RuntimeError("down")))

        assert result.data is None
        assert result.error == "down"


@pytest.mark.asyncio
class TestStaleWhileRevalidate:
    async def test_serves_stale_and_refreshes_in_background(self, cache, seed):
        seed("insights", "stale", age=600.0)
        fetch = ScriptedFetch("fresh")

        result = await cache.get("insights", fetch, stale_while_revalidate=True)

        assert result.data == "stale"
        assert result.is_from_cache is True
        assert result.error is None

        await cache.drain()

        assert fetch.calls == 1
        assert cache.peek("insights").value == "fresh"
        assert cache.metrics.stale_served == 1

    async def test_background_result_is_reported(self, cache, seed):
        seed("insights", "stale", age=600.0)
        reported = []

        await cache.get(
            "insights",
            ScriptedFetch("fresh"),
            stale_while_revalidate=True,
            on_revalidated=reported.append,
        )
        assert reported == []

        await cache.drain()

        assert len(reported) == 1
        assert reported[0].data == "fresh"
        assert reported[0].is_from_cache is False

    async def test_live_entry_does_not_trigger_revalidation(self, cache, seed):
        seed("insights", "live")
        fetch = ScriptedFetch("fresh")

        await cache.get("insights", fetch, stale_while_revalidate=True)
        await cache.drain()

        assert fetch.calls == 0

    async def test_aclose_cancels_background_work(self, cache, seed):
        seed("insights", "stale", age=600.0)

        async def hang():
            await asyncio.Event().wait()

        await cache.get("insights", hang, stale_while_revalidate=True)
        await cache.aclose()

        assert cache.get_stats()["background_tasks"] == 0


@pytest.mark.asyncio
class TestInFlightDeduplication:
    async def _overlapping_refreshes(self, cache):
        gate = asyncio.Event()
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            await gate.wait()
            return calls

        first = asyncio.create_task(cache.refresh("k", fetch))
        second = asyncio.create_task(cache.refresh("k", fetch))
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(first, second)
        return calls, results

    async def test_overlapping_calls_share_one_fetch(self, store, config, clock):
        cache = ResilientCache(store=store, config=config, clock=clock, dedupe_in_flight=True)

        calls, results = await self._overlapping_refreshes(cache)

        assert calls == 1
        assert [r.data for r in results] == [1, 1]

    async def test_without_dedupe_each_call_fetches(self, cache):
        calls, results = await self._overlapping_refreshes(cache)

        assert calls == 2
        assert sorted(r.data for r in results) == [2, 2]


class TestMaintenance:
    def test_purge_expired_removes_stale_and_corrupt(self, cache, store, seed):
        seed("fresh", 1)
        seed("stale", 2, age=600.0)
        store.set("corrupt", "garbage")

        removed = cache.purge_expired(["fresh", "stale", "corrupt", "missing"])

        assert removed == 2
        assert store.keys() == ["fresh"]

    def test_peek_respects_expiry(self, cache, seed):
        seed("k", "v", age=600.0)

        assert cache.peek("k") is None
        assert cache.peek("k", allow_expired=True).value == "v"

    def test_create_from_settings(self, store):
        from resilient_cache.config import Settings

        cache = ResilientCache.create(Settings(cache_ttl=60.0, retry_max_attempts=5), store=store)

        assert cache.config.ttl == 60.0
        assert cache.retry_policy.max_attempts == 5
        assert cache.store is store

    def test_health_uses_store_health_check(self, cache):
        assert cache.is_healthy() is True

    def test_health_reads_store_without_health_check(self, config):
        cache = ResilientCache(store=BrokenStore(StorageError("down")), config=config)

        assert cache.is_healthy() is False

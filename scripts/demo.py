#!/usr/bin/env python3
"""
Demo script for the resilient cache.

Simulates a flaky habits backend and shows cache hits, retries with
backoff, stale fallback and manual refresh. Uses the store selected by
STORE_BACKEND (in-memory by default).
"""

import asyncio
import random

from resilient_cache import CacheConfig, CachedResource, ResilientCache, create_store, get_settings
from resilient_cache.log import configure_logging


class FlakyBackend:
    """Pretend remote API failing a configurable share of calls."""

    def __init__(self, failure_rate: float) -> None:
        self.failure_rate = failure_rate
        self.calls = 0

    async def list_habits(self) -> list[str]:
        self.calls += 1
        await asyncio.sleep(0.05)
        if random.random() < self.failure_rate:
            raise ConnectionError("backend unavailable")
        return ["run", "read", "meditate"]


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def describe(label: str, resource: CachedResource) -> None:
    state = resource.state
    source = "cache" if state.is_from_cache else "backend"
    print(f"  {label:<28} data={state.data} source={source} error={state.error}")


async def demo_basic_cache(cache: ResilientCache) -> None:
    """Cold load, then an instant cache hit."""
    print_section("Cache Hit")

    backend = FlakyBackend(failure_rate=0.0)
    habits = CachedResource(cache, "habits:list", backend.list_habits)

    await habits.load()
    describe("first load", habits)
    await habits.load()
    describe("second load", habits)
    print(f"  backend calls: {backend.calls}")


async def demo_retry(cache: ResilientCache) -> None:
    """Refresh against a backend that fails half the time."""
    print_section("Retry With Backoff")

    backend = FlakyBackend(failure_rate=0.5)
    habits = CachedResource(cache, "habits:list", backend.list_habits)

    await habits.refresh()
    describe("refresh", habits)
    print(f"  backend calls: {backend.calls}")


async def demo_fallback(cache: ResilientCache) -> None:
    """Every attempt fails: the stored entry is served with the error."""
    print_section("Stale Fallback")

    backend = FlakyBackend(failure_rate=1.0)
    habits = CachedResource(cache, "habits:list", backend.list_habits)

    await habits.refresh()
    describe("refresh (backend down)", habits)
    if habits.state.is_degraded:
        print("  ⚠ showing cached habits, the backend could not be reached")

    habits.clear_cache()
    await habits.refresh()
    describe("after clear_cache", habits)


async def main() -> None:
    """Run all demos."""
    settings = get_settings()
    configure_logging("WARNING")

    cache = ResilientCache(
        store=create_store(settings),
        config=CacheConfig(ttl=60.0, max_attempts=3, base_delay=0.2, backoff_factor=2.0),
    )

    print("\n🚀 Resilient Cache Demo")
    try:
        await demo_basic_cache(cache)
        await demo_retry(cache)
        await demo_fallback(cache)

        print_section("Stats")
        for name, value in cache.get_stats().items():
            print(f"  {name:<18} {value}")
    finally:
        await cache.aclose()


if __name__ == "__main__":
    asyncio.run(main())

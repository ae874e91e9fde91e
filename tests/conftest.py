"""Shared fixtures for the resilient cache tests."""

import pytest

from resilient_cache.clock import ManualClock
from resilient_cache.codec import CacheEntryCodec
from resilient_cache.config import CacheConfig
from resilient_cache.entities import CacheEntry
from resilient_cache.repositories import InMemoryStore
from resilient_cache.services import ResilientCache

T0 = 1_700_000_000.0


class ScriptedFetch:
    """Async fetch function replaying a script of outcomes.

    Exceptions in the script are raised, anything else is returned. The
    last outcome repeats once the script runs out.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        outcome = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class BrokenStore:
    """Store whose every operation fails."""

    def __init__(self, error: Exception):
        self.error = error

    def get(self, key):
        raise self.error

    def set(self, key, value):
        raise self.error

    def remove(self, key):
        raise self.error


@pytest.fixture
def clock():
    """Manual clock starting at a fixed instant."""
    return ManualClock(start=T0)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def codec():
    return CacheEntryCodec()


@pytest.fixture
def config():
    return CacheConfig(ttl=300.0, max_attempts=3, base_delay=1.0, backoff_factor=2.0)


@pytest.fixture
def cache(store, config, clock):
    return ResilientCache(store=store, config=config, clock=clock)


@pytest.fixture
def seed(store, codec, clock):
    """Write an entry into the store as if fetched ``age`` seconds ago."""

    def _seed(key, value, ttl=300.0, age=0.0):
        entry = CacheEntry.create(value, now=clock.now() - age, ttl=ttl)
        store.set(key, codec.encode(entry))
        return entry

    return _seed

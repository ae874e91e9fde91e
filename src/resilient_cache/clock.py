"""Clock implementations satisfying the Clock protocol."""

import asyncio
import time


class SystemClock:
    """Wall clock backed by time.time and asyncio.sleep."""

    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class ManualClock:
    """Deterministic clock for tests.

    Time only moves when advance() is called or when a task sleeps. A sleep
    returns immediately after moving virtual time forward, and every
    requested delay is recorded in ``sleeps``.

    Example:
        ```python
        clock = ManualClock(start=1_000.0)
        clock.advance(4.999)
        await clock.sleep(1.0)
        assert clock.sleeps == [1.0]
        ```
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        """Move virtual time forward."""
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        self._now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._now += seconds
        # Still yield to the loop so other tasks interleave as with a real sleep
        await asyncio.sleep(0)

"""Clock protocol.

All expiration and backoff math goes through a Clock so that tests can
control time instead of waiting for it.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of the current time and of cooperative sleeps."""

    def now(self) -> float:
        """Return the current time in epoch seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for the given number of seconds."""
        ...

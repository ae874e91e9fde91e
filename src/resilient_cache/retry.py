"""Retry policy with exponential backoff.

The policy only answers questions ("retry again?", "wait how long?"). The
caller owns the waiting, so the policy stays synchronous and can be unit
tested without an event loop.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass, field

from resilient_cache.config import CacheConfig
from resilient_cache.errors import ConfigurationError, NonRetryableError


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff.

    Attributes:
        max_attempts: Total fetch attempts allowed, including the first one
        base_delay: Seconds to wait after the first failure
        backoff_factor: Growth factor of the delay per attempt
        is_retryable: Optional classifier; returning False stops retrying
            immediately without spending the backoff budget
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    is_retryable: Callable[[BaseException], bool] | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if not math.isfinite(self.base_delay) or self.base_delay < 0:
            raise ConfigurationError(f"base_delay must be a finite non-negative number, got {self.base_delay}")
        if not math.isfinite(self.backoff_factor) or self.backoff_factor < 1:
            raise ConfigurationError(f"backoff_factor must be a finite number of at least 1, got {self.backoff_factor}")

    @classmethod
    def from_config(
        cls,
        config: CacheConfig,
        is_retryable: Callable[[BaseException], bool] | None = None,
    ) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            backoff_factor=config.backoff_factor,
            is_retryable=is_retryable,
        )

    def should_retry(self, attempt: int, error: BaseException) -> bool:
        """Decide whether another attempt follows a failed one.

        Args:
            attempt: Number of the attempt that just failed (1-based)
            error: The failure raised by that attempt

        Returns:
            True if the caller should wait delay_for(attempt) and try again
        """
        if attempt >= self.max_attempts:
            return False
        if isinstance(error, NonRetryableError):
            return False
        if self.is_retryable is not None and not self.is_retryable(error):
            return False
        return True

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt: base * factor^(attempt-1)."""
        if attempt < 1:
            raise ValueError(f"attempt numbers start at 1, got {attempt}")
        return self.base_delay * self.backoff_factor ** (attempt - 1)


@dataclass
class RetryState:
    """Progress of one get/refresh call. Never persisted."""

    attempt: int = 0
    last_error: BaseException | None = None

    def record_failure(self, error: BaseException) -> None:
        self.last_error = error

"""
Bounded retry with per-attempt and total deadlines.

Each attempt is raced against ``attempt_timeout_ms``; another attempt is
made only for retryable failures, while attempts remain and while the
total budget since the first attempt has not run out. Backoff is jittered
around a fixed base so concurrent callers do not retry in lockstep.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from app_store_fetch.errors import FetchError, is_retryable
from app_store_fetch.resilience.timeout import run_with_timeout

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry policy.

    Attributes:
        enabled: Whether failed attempts may be retried at all
        retries: Maximum number of retries after the first attempt
        attempt_timeout_ms: Deadline for a single attempt
        total_timeout_ms: No retry starts once this much time has elapsed
        backoff_base_ms: Center of the jittered delay between attempts
    """

    enabled: bool = True
    retries: int = 1
    attempt_timeout_ms: int = 1500
    total_timeout_ms: int = 4000
    backoff_base_ms: int = 200

    @classmethod
    def no_retry(cls) -> RetryConfig:
        """Create a config that disables retries."""
        return cls(enabled=False)


@dataclass
class RetryResult:
    """Result of a retry operation.

    Attributes:
        success: Whether the operation succeeded
        value: The result value (if success)
        error: The last error (if failed)
        attempts: Number of attempts made
        total_delay_ms: Total backoff delay in milliseconds
    """

    success: bool
    value: Any = None
    error: Exception | None = None
    attempts: int = 0
    total_delay_ms: float = 0.0


class RetryPolicy:
    """Retry policy with attempt deadlines and jittered backoff.

    Example:
        >>> policy = RetryPolicy(RetryConfig(retries=2))
        >>> result = await policy.execute(async_operation)
        >>> if not result.success:
        ...     print(f"Failed after {result.attempts} attempts")
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize retry policy.

        Args:
            config: Retry configuration, read at every call
            sleep: Coroutine used for backoff waits
            clock: Monotonic clock returning seconds
        """
        self._config = config or RetryConfig()
        self._sleep = sleep
        self._clock = clock

    @property
    def config(self) -> RetryConfig:
        return self._config

    def calculate_delay(self) -> float:
        """Calculate a backoff delay in seconds, uniform in [0.5, 1.5] x base."""
        base_ms = self._config.backoff_base_ms
        return random.uniform(0.5 * base_ms, 1.5 * base_ms) / 1000.0

    def should_retry(self, error: Exception, attempts: int, elapsed: float) -> bool:
        """Check if a failed attempt should be followed by another one.

        Args:
            error: The exception of the last attempt
            attempts: Attempts made so far (1-based)
            elapsed: Seconds since the first attempt started

        Returns:
            True if should retry
        """
        if not self._config.enabled:
            return False
        if attempts > self._config.retries:
            return False
        if elapsed * 1000.0 >= self._config.total_timeout_ms:
            return False

        error_class = getattr(error, "error_class", None)
        if isinstance(error, FetchError) and error_class is not None:
            return is_retryable(error_class)

        # Unknown errors are not retried
        return False

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        on_retry: Callable[[int, Exception, float], None] | None = None,
        *,
        label: str = "direct request",
    ) -> RetryResult:
        """Execute an operation with retry.

        Args:
            operation: Async operation factory, called once per attempt
            on_retry: Optional callback called before each retry
            label: Name used in timeout messages

        Returns:
            RetryResult with success status and value/error
        """
        start = self._clock()
        total_delay = 0.0
        attempts = 0

        while True:
            attempts += 1
            try:
                value = await run_with_timeout(
                    operation, self._config.attempt_timeout_ms, label=label
                )
                return RetryResult(
                    success=True,
                    value=value,
                    attempts=attempts,
                    total_delay_ms=total_delay * 1000,
                )
            except Exception as e:
                elapsed = self._clock() - start
                if not self.should_retry(e, attempts, elapsed):
                    return RetryResult(
                        success=False,
                        error=e,
                        attempts=attempts,
                        total_delay_ms=total_delay * 1000,
                    )

                delay = self.calculate_delay()
                total_delay += delay

                if on_retry:
                    on_retry(attempts, e, delay)

                await self._sleep(delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    on_retry: Callable[[int, Exception, float], None] | None = None,
) -> T:
    """Execute an operation with retry, raising on failure.

    Args:
        operation: Async operation to execute
        config: Retry configuration
        on_retry: Optional callback called before each retry

    Returns:
        Operation result

    Raises:
        The last exception if all attempts fail
    """
    policy = RetryPolicy(config)
    result = await policy.execute(operation, on_retry)

    if result.success:
        return result.value
    raise result.error  # type: ignore[misc]

"""
Shared resilience state for one process.

A ``ResilienceContext`` owns the configuration, the circuit breaker and
the throttle queue that every request through an orchestrator shares.
Normally a single default context exists per process; tests and embedders
can build their own and inject it.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

from app_store_fetch.config import FetchConfig
from app_store_fetch.resilience.circuit_breaker import CircuitBreaker
from app_store_fetch.resilience.retry import RetryPolicy
from app_store_fetch.resilience.throttle import RequestThrottler

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping


class ResilienceContext:
    """Configuration plus breaker and throttler state.

    Example:
        >>> context = ResilienceContext(FetchConfig())
        >>> context.configure({"breaker": {"failureThreshold": 5}})
        >>> context.breaker.config.failure_threshold
        5
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize context.

        Args:
            config: Pipeline configuration (defaults applied if omitted)
            clock: Monotonic clock in seconds shared by breaker and retry
            sleep: Coroutine used for backoff and window waits
        """
        self.config = config or FetchConfig.default()
        self.clock = clock
        self.sleep = sleep
        self.breaker = CircuitBreaker(self.config.breaker, clock=clock)
        self.throttler = RequestThrottler(self.config.throttling, sleep=sleep)

    def configure(self, options: Mapping[str, Any] | None = None) -> FetchConfig:
        """Merge options into the configuration (see ``FetchConfig.update``)."""
        return self.config.update(options or {})

    def retry_policy(self) -> RetryPolicy:
        """Build a retry policy bound to the current retry settings."""
        return RetryPolicy(self.config.retry, sleep=self.sleep, clock=self.clock)

    def __repr__(self) -> str:
        return (
            f"ResilienceContext(breaker={self.breaker!r}, "
            f"pending={self.throttler.pending})"
        )


# Process-wide default context
_default_context: ResilienceContext | None = None


def get_default_context() -> ResilienceContext:
    """Get the process-wide context, creating it from the environment."""
    global _default_context
    if _default_context is None:
        _default_context = ResilienceContext(FetchConfig.from_env())
    return _default_context


def set_default_context(context: ResilienceContext | None) -> None:
    """Replace the process-wide context (None resets it lazily)."""
    global _default_context
    _default_context = context

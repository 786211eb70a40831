"""
Circuit breaker for the direct request path.

Implements the circuit breaker pattern with three states:
- Closed: Normal operation, direct attempts pass through
- Open: Upstream judged unhealthy, direct attempts are skipped
- Half-Open: While open, a sparse probe attempt is let through

Recovery needs no timer: once the open window has elapsed the breaker
reports closed again, and the next recorded success clears the failure
count.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from app_store_fetch.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger("app_store_fetch.resilience.circuit_breaker")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker.

    Attributes:
        enabled: Whether the breaker may suppress direct attempts
        failure_threshold: Consecutive failures that open the circuit
        open_ms: How long the circuit stays open
        half_open_probe_interval_ms: Minimum spacing between probes while open
    """

    enabled: bool = True
    failure_threshold: int = 3
    open_ms: int = 120_000
    half_open_probe_interval_ms: int = 30_000

    @classmethod
    def default(cls) -> CircuitBreakerConfig:
        """Create default configuration."""
        return cls()

    @classmethod
    def disabled(cls) -> CircuitBreakerConfig:
        """Create a configuration that never opens."""
        return cls(enabled=False)


@dataclass
class BreakerState:
    """Mutable breaker state.

    Attributes:
        failures: Consecutive failures since the last success
        open_until: Clock value until which the circuit is open (0 = closed)
        last_probe_at: Clock value of the last probe or opening
    """

    failures: int = 0
    open_until: float = 0.0
    last_probe_at: float = 0.0


class CircuitBreaker:
    """Circuit breaker guarding the direct request path.

    The breaker does not execute operations itself; the orchestrator asks
    it for admission and reports outcomes.

    Example:
        >>> breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=3))
        >>> decision = breaker.admit()
        >>> if decision is CircuitState.OPEN:
        ...     ...  # skip the direct path
    """

    def __init__(
        self,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize circuit breaker.

        Args:
            config: Circuit breaker configuration, shared by reference
            clock: Monotonic clock returning seconds
        """
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._state = BreakerState()

    @property
    def config(self) -> CircuitBreakerConfig:
        return self._config

    @property
    def failures(self) -> int:
        return self._state.failures

    @property
    def open_until(self) -> float:
        return self._state.open_until

    @property
    def last_probe_at(self) -> float:
        return self._state.last_probe_at

    @property
    def state(self) -> CircuitState:
        """Get current circuit state (OPEN while the open window lasts)."""
        if self.is_open():
            return CircuitState.OPEN
        return CircuitState.CLOSED

    def is_open(self, now: float | None = None) -> bool:
        """Check whether direct attempts are currently suppressed."""
        if not self._config.enabled:
            return False
        now = self._clock() if now is None else now
        return self._state.open_until > now

    def _probe_due(self, now: float) -> bool:
        interval = self._config.half_open_probe_interval_ms / 1000.0
        return now - self._state.last_probe_at >= interval

    def admit(self) -> CircuitState:
        """Decide whether a direct attempt may run.

        Returns:
            CLOSED when the attempt runs normally, HALF_OPEN when it is
            granted as a probe while open, OPEN when it must be skipped
        """
        now = self._clock()
        if not self.is_open(now):
            return CircuitState.CLOSED

        if self._probe_due(now):
            # Probing never moves open_until; only a success closes early.
            self._state.last_probe_at = now
            logger.debug("Circuit breaker granting probe attempt")
            return CircuitState.HALF_OPEN

        return CircuitState.OPEN

    def record_failure(self) -> None:
        """Record a failed direct attempt."""
        if not self._config.enabled:
            return

        now = self._clock()
        self._state.failures += 1

        if self._state.failures >= self._config.failure_threshold and not self.is_open(now):
            self._state.open_until = now + self._config.open_ms / 1000.0
            self._state.last_probe_at = now
            logger.warn_throttled(
                "breaker_open",
                60,
                f"Circuit breaker opened for {self._config.open_ms}ms",
                failures=self._state.failures,
            )

    def record_success(self) -> None:
        """Record a successful direct attempt, closing the circuit."""
        self._state.failures = 0
        self._state.open_until = 0.0

    def time_until_close(self) -> float | None:
        """Get seconds until the open window ends.

        Returns:
            Seconds remaining, or None if not open
        """
        now = self._clock()
        if not self.is_open(now):
            return None
        return max(0.0, self._state.open_until - now)

    def reset(self) -> None:
        """Reset circuit breaker to a fresh closed state."""
        self._state = BreakerState()

    def snapshot(self) -> BreakerState:
        """Get a copy of the breaker state."""
        return BreakerState(
            failures=self._state.failures,
            open_until=self._state.open_until,
            last_probe_at=self._state.last_probe_at,
        )

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(state={self.state.value}, "
            f"failures={self._state.failures}/{self._config.failure_threshold})"
        )

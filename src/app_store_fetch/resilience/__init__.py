"""
Resilience layer - Throttling, retry, circuit breaker and fallback.

This module provides the patterns the request pipeline composes:
- CircuitBreaker: Closed/Open/Half-Open with sparse probing
- RequestThrottler: Fixed-size, fixed-interval request batching
- RetryPolicy: Bounded retry with attempt and total deadlines
- run_with_timeout: Deadlines that stop waiting without cancelling
- FallbackChain: Ordered alternative retrieval strategies
- ResilienceContext: Shared per-process state
"""

from app_store_fetch.resilience.circuit_breaker import (
    BreakerState,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from app_store_fetch.resilience.fallback import (
    FallbackChain,
    FallbackConfig,
    FallbackResult,
    FallbackStrategy,
)
from app_store_fetch.resilience.retry import (
    RetryConfig,
    RetryPolicy,
    RetryResult,
    with_retry,
)
from app_store_fetch.resilience.throttle import (
    QueuedRequest,
    RequestThrottler,
    ThrottleConfig,
)
from app_store_fetch.resilience.timeout import detached_count, run_with_timeout

__all__ = [
    # Circuit breaker
    "BreakerState",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    # Fallback
    "FallbackChain",
    "FallbackConfig",
    "FallbackResult",
    "FallbackStrategy",
    # Throttling
    "QueuedRequest",
    "RequestThrottler",
    # Retry
    "RetryConfig",
    "RetryPolicy",
    "RetryResult",
    "ThrottleConfig",
    # Timeouts
    "detached_count",
    "run_with_timeout",
    "with_retry",
]

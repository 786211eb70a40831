"""
Error classification for upstream failures.

Maps HTTP statuses and transport failures onto the classes that drive
retry, fallback and circuit breaker decisions.
"""

from __future__ import annotations

from enum import Enum


class ErrorClass(str, Enum):
    """Upstream failure classification."""

    BLOCKED = "blocked"
    """HTTP 403: upstream actively rejected the client."""

    RATE_LIMITED = "rate_limited"
    """HTTP 429: upstream is throttling us."""

    SERVER_ERROR = "server_error"
    """HTTP 5xx: transient upstream failure."""

    NETWORK = "network"
    """No response obtained (connection, DNS, TLS, protocol failure)."""

    TIMEOUT = "timeout"
    """No response obtained within the attempt deadline."""

    CLIENT_ERROR = "client_error"
    """Any other non-OK status (e.g. 404); surfaced as-is."""


_RETRYABLE_CLASSES: frozenset[ErrorClass] = frozenset(
    {
        ErrorClass.RATE_LIMITED,
        ErrorClass.SERVER_ERROR,
        ErrorClass.NETWORK,
        ErrorClass.TIMEOUT,
    }
)

_FALLBACKABLE_CLASSES: frozenset[ErrorClass] = _RETRYABLE_CLASSES | {ErrorClass.BLOCKED}


def classify_status(status_code: int) -> ErrorClass | None:
    """Classify an HTTP status code.

    Args:
        status_code: HTTP status code

    Returns:
        ErrorClass for non-OK statuses, None for 2xx
    """
    if 200 <= status_code < 300:
        return None
    if status_code == 403:
        return ErrorClass.BLOCKED
    if status_code == 429:
        return ErrorClass.RATE_LIMITED
    if 500 <= status_code <= 599:
        return ErrorClass.SERVER_ERROR
    return ErrorClass.CLIENT_ERROR


def is_retryable(error_class: ErrorClass) -> bool:
    """Check if an error class may be retried on the direct path."""
    return error_class in _RETRYABLE_CLASSES


def is_fallbackable(error_class: ErrorClass) -> bool:
    """Check if an error class sends the request down the fallback chain.

    Fallbackable failures are also the ones penalized by the breaker.
    """
    return error_class in _FALLBACKABLE_CLASSES

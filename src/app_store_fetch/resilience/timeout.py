"""
Attempt deadlines that stop waiting without cancelling.

``run_with_timeout`` races an operation against a deadline. When the
deadline wins, the caller gets ``AttemptTimeoutError`` while the operation
keeps running as a detached task; whatever it eventually returns or raises
is retrieved and discarded, never awaited by anyone.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, TypeVar

from app_store_fetch.errors import AttemptTimeoutError
from app_store_fetch.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = get_logger("app_store_fetch.resilience.timeout")

# Detached tasks stay referenced until they finish.
_detached: set[asyncio.Task[Any]] = set()


def _discard_late_outcome(task: asyncio.Task[Any]) -> None:
    _detached.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("Discarded late failure of timed-out attempt", error=str(error))
    else:
        logger.debug("Discarded late result of timed-out attempt")


def detached_count() -> int:
    """Number of timed-out operations still running in the background."""
    return len(_detached)


async def run_with_timeout(
    operation: Callable[[], Awaitable[T]],
    timeout_ms: float,
    *,
    label: str = "operation",
) -> T:
    """Await an operation, giving up after ``timeout_ms``.

    Args:
        operation: Async operation factory
        timeout_ms: Deadline in milliseconds
        label: Name used in the timeout message

    Returns:
        The operation result if it settles in time

    Raises:
        AttemptTimeoutError: If the deadline passes first; the operation is
            left running and its late outcome is discarded
        Exception: Whatever the operation raised, if it settled in time
    """
    task: asyncio.Task[T] = asyncio.ensure_future(operation())
    done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000.0)

    if task in done:
        return task.result()

    _detached.add(task)
    task.add_done_callback(_discard_late_outcome)
    raise AttemptTimeoutError(
        f"{label} timeout after {timeout_ms:g}ms", timeout_ms=timeout_ms
    )

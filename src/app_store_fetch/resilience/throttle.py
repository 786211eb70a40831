"""
Request throttler batching outbound requests into fixed windows.

Requests join one FIFO queue. A single batch processor drains up to a
window's worth of entries, issues them concurrently, waits for all of
them, and sleeps for the window interval before the next batch whenever
entries are still waiting.

Per-call limits resize the window for the batch they head, but every
caller shares the same queue and processor, so an aggressive limit from
one caller changes the pacing seen by the others.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from app_store_fetch.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import httpx

logger = get_logger("app_store_fetch.resilience.throttle")


@dataclass
class ThrottleConfig:
    """Configuration for request throttling.

    Attributes:
        enabled: Throttle every direct request, not only calls with a limit
        requests: Requests admitted per window
        interval_ms: Window length in milliseconds
    """

    enabled: bool = False
    requests: int = 10
    interval_ms: int = 1000

    @classmethod
    def from_rps(cls, rps: int) -> ThrottleConfig:
        """Create an enabled config admitting ``rps`` requests per second."""
        return cls(enabled=True, requests=rps, interval_ms=1000)


@dataclass
class QueuedRequest:
    """A pending throttled request."""

    fetch: Callable[..., Awaitable[httpx.Response]]
    url: str
    options: dict[str, Any]
    future: asyncio.Future[httpx.Response]
    limit: int | None = None


class RequestThrottler:
    """Window-batching request throttler.

    Example:
        >>> throttler = RequestThrottler(ThrottleConfig(requests=5))
        >>> response = await throttler.submit(transport.fetch, url, {"headers": headers})
    """

    def __init__(
        self,
        config: ThrottleConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize throttler.

        Args:
            config: Throttle configuration, read for every batch
            sleep: Coroutine used for the inter-batch wait
        """
        self._config = config or ThrottleConfig()
        self._sleep = sleep
        self._queue: deque[QueuedRequest] = deque()
        self._processing = False
        self._worker: asyncio.Task[None] | None = None
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def config(self) -> ThrottleConfig:
        return self._config

    @property
    def pending(self) -> int:
        """Number of queued requests not yet dispatched."""
        return len(self._queue)

    @property
    def processing(self) -> bool:
        """Whether a batch processor is active."""
        return self._processing

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of simultaneously dispatched requests seen."""
        return self._peak_in_flight

    def submit(
        self,
        fetch: Callable[..., Awaitable[httpx.Response]],
        url: str,
        options: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> asyncio.Future[httpx.Response]:
        """Queue a request.

        Args:
            fetch: Transport primitive called as ``fetch(url, **options)``
            url: Target URL
            options: Keyword options for the transport primitive
            limit: Window size override for the batch this entry heads

        Returns:
            Future resolved with the response or rejected with the
            transport error, exactly once
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[httpx.Response] = loop.create_future()
        self._queue.append(
            QueuedRequest(
                fetch=fetch,
                url=url,
                options=dict(options or {}),
                future=future,
                limit=limit,
            )
        )
        self._kick()
        return future

    def _kick(self) -> None:
        if self._processing or not self._queue:
            return
        self._processing = True
        self._worker = asyncio.get_running_loop().create_task(self._process_queue())

    def _window_size(self, head: QueuedRequest) -> int:
        size = head.limit if head.limit and head.limit > 0 else self._config.requests
        return max(1, int(size))

    async def _process_queue(self) -> None:
        try:
            while self._queue:
                size = self._window_size(self._queue[0])
                batch = [self._queue.popleft() for _ in range(min(size, len(self._queue)))]
                logger.debug(
                    "Dispatching throttled batch",
                    batch_size=len(batch),
                    pending=len(self._queue),
                )
                await asyncio.gather(*(self._dispatch(entry) for entry in batch))

                if self._queue:
                    await self._sleep(self._config.interval_ms / 1000.0)
        finally:
            self._processing = False
            self._worker = None

    async def _dispatch(self, entry: QueuedRequest) -> None:
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        try:
            response = await entry.fetch(entry.url, **entry.options)
        except Exception as e:
            if not entry.future.done():
                entry.future.set_exception(e)
            else:
                logger.debug("Dropped late throttled failure", url=entry.url, error=str(e))
        else:
            if not entry.future.done():
                entry.future.set_result(response)
        finally:
            self._in_flight -= 1

    async def wait_idle(self) -> None:
        """Wait until the queue is drained and no batch is running."""
        while self._worker is not None:
            await asyncio.shield(self._worker)

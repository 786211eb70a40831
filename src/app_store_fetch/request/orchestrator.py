"""请求编排器：组合熔断、限流、重试与降级链的统一入口。

Request orchestrator combining all resilience patterns.

Every endpoint goes through ``RequestOrchestrator.request``:

1. Merge caller headers over the default client profile.
2. Ask the breaker for admission; when it is open and no probe is due,
   skip the direct path.
3. Otherwise run the retry policy around one throttled or plain fetch.
4. On success, record it on the breaker and return the body text.
5. Client errors (e.g. 404) are raised as-is. Blocking, rate limiting,
   server errors and missing responses record one breaker failure and
   walk the fallback chain; if every stage fails the original error is
   raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app_store_fetch.errors import (
    CircuitOpenError,
    ErrorClass,
    FetchError,
    HttpError,
    is_fallbackable,
)
from app_store_fetch.request.strategies import RequestContext, build_default_chain
from app_store_fetch.resilience.circuit_breaker import CircuitState
from app_store_fetch.resilience.context import ResilienceContext, get_default_context
from app_store_fetch.resilience.retry import RetryResult
from app_store_fetch.telemetry import (
    LogContext,
    get_logger,
    reset_log_context,
    set_log_context,
)
from app_store_fetch.transport import HttpTransport

if TYPE_CHECKING:
    from collections.abc import Mapping

    import httpx

    from app_store_fetch.config import FetchConfig
    from app_store_fetch.resilience.fallback import FallbackChain

logger = get_logger("app_store_fetch.request.orchestrator")

_WARN_WINDOW_SECONDS = 60


def _is_fallbackable(error: Exception) -> bool:
    """Blocking, rate limiting, 5xx and missing responses go to the chain."""
    if not isinstance(error, FetchError) or error.error_class is None:
        return False
    return is_fallbackable(error.error_class)


class RequestOrchestrator:
    """Single entry point turning a URL into response text.

    Example:
        >>> orchestrator = RequestOrchestrator()
        >>> body = await orchestrator.request(
        ...     "https://itunes.apple.com/lookup?id=553834731&country=us",
        ...     limit=5,
        ... )
    """

    def __init__(
        self,
        context: ResilienceContext | None = None,
        transport: HttpTransport | None = None,
        fallback_chain: FallbackChain | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            context: Shared resilience state (process default if omitted)
            transport: Transport primitive (a fresh HttpTransport if omitted)
            fallback_chain: Alternative strategies (standard chain if omitted)
        """
        self._context = context or get_default_context()
        self._transport = transport or HttpTransport()
        self._chain = fallback_chain or build_default_chain(
            self._transport, self._context.config.fallback
        )

    @property
    def context(self) -> ResilienceContext:
        return self._context

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    @property
    def fallback_chain(self) -> FallbackChain:
        return self._chain

    def configure(self, options: Mapping[str, Any] | None = None) -> FetchConfig:
        """Merge options into the shared configuration."""
        return self._context.configure(options)

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    def _should_throttle(self, limit: int | None) -> bool:
        return bool(limit) or self._context.config.throttling.enabled

    async def _fetch_once(self, ctx: RequestContext) -> httpx.Response:
        """One direct attempt; a non-OK response becomes an HttpError."""
        options = ctx.fetch_options()
        if self._should_throttle(ctx.limit):
            response = await self._context.throttler.submit(
                self._transport.fetch, ctx.url, options, limit=ctx.limit
            )
        else:
            response = await self._transport.fetch(ctx.url, **options)

        if not response.is_success:
            raise HttpError.from_response(response)
        return response

    async def _run_direct(self, ctx: RequestContext) -> RetryResult:
        policy = self._context.retry_policy()

        def on_retry(attempt: int, error: Exception, delay: float) -> None:
            logger.debug(
                "Retrying direct request",
                attempt=attempt,
                error=str(error),
                delay_ms=round(delay * 1000),
            )

        return await policy.execute(lambda: self._fetch_once(ctx), on_retry)

    def _warn_entering_chain(self, error: Exception) -> None:
        error_class = getattr(error, "error_class", None)
        if error_class is ErrorClass.BLOCKED:
            logger.warn_throttled(
                "blocked_403",
                _WARN_WINDOW_SECONDS,
                "Primary request blocked, trying alternative methods...",
            )
        elif isinstance(error, HttpError):
            logger.warn_throttled(
                "primary_non_ok",
                _WARN_WINDOW_SECONDS,
                f"Primary request non-ok ({error.status_code}), trying alternative methods...",
            )
        else:
            logger.warn_throttled(
                "direct_timeout",
                _WARN_WINDOW_SECONDS,
                "Primary request timed out or failed, trying alternative methods...",
            )

    async def request(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        options: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> str:
        """Fetch a URL through the resilient pipeline.

        Args:
            url: Target URL
            headers: Header overrides merged over the default profile
            options: Transport options (params, timeout, method, ...)
            limit: Requests per throttle window for this call; enables
                throttling for the call when given

        Returns:
            Response body text

        Raises:
            HttpError: The final response was non-OK (status, text, body)
            TransportError: No response could be obtained on any path
            CircuitOpenError: Direct path skipped and every fallback failed
        """
        ctx = RequestContext.build(url, headers, options, limit)
        token = set_log_context(LogContext(request_id=ctx.request_id, url=url))
        try:
            return await self._request(ctx)
        finally:
            reset_log_context(token)

    async def _request(self, ctx: RequestContext) -> str:
        logger.debug("Making request", url=ctx.url, headers=ctx.header_overrides)

        breaker = self._context.breaker
        decision = breaker.admit()

        if decision is CircuitState.OPEN:
            logger.debug("Circuit breaker open, skipping direct path")
            error: Exception = CircuitOpenError(time_until_close=breaker.time_until_close())
        else:
            result = await self._run_direct(ctx)
            if result.success:
                breaker.record_success()
                body = result.value.text
                logger.debug("Request successful", body_length=len(body))
                return body

            error = result.error
            if not _is_fallbackable(error):
                logger.error(f"Request error details: {error}")
                raise error

            breaker.record_failure()

        self._warn_entering_chain(error)
        fallback = await self._chain.execute(ctx)
        if fallback.success:
            logger.debug(
                "Fallback strategy succeeded",
                strategy=fallback.strategy_used,
                body_length=len(fallback.value or ""),
            )
            return fallback.value or ""

        if isinstance(error, HttpError):
            logger.debug("Error response body", body=error.body)
        logger.error(f"Request error details: {error}")
        raise error


# Process-wide default orchestrator
_default_orchestrator: RequestOrchestrator | None = None


def get_default_orchestrator() -> RequestOrchestrator:
    """Get the orchestrator bound to the process-wide context."""
    global _default_orchestrator
    if _default_orchestrator is None or _default_orchestrator.context is not get_default_context():
        _default_orchestrator = RequestOrchestrator(get_default_context())
    return _default_orchestrator


def set_default_orchestrator(orchestrator: RequestOrchestrator | None) -> None:
    """Replace the process-wide orchestrator (None resets it lazily)."""
    global _default_orchestrator
    _default_orchestrator = orchestrator


def configure(options: Mapping[str, Any] | None = None) -> FetchConfig:
    """Merge options into the process-wide configuration.

    Example:
        >>> configure({"retry": {"retries": 0}, "throttling": {"intervalMs": 500}})
    """
    return get_default_context().configure(options)


async def request(
    url: str,
    headers: dict[str, str] | None = None,
    options: dict[str, Any] | None = None,
    limit: int | None = None,
) -> str:
    """Fetch a URL through the process-wide orchestrator."""
    return await get_default_orchestrator().request(url, headers, options, limit)

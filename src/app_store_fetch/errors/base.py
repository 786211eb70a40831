"""错误基类：请求管线的分层错误体系。

Base error classes for app-store-fetch.

Provides a layered error hierarchy:
- FetchError: Base class for all library errors
- TransportError: No response obtained (network failure)
- AttemptTimeoutError: No response within the attempt deadline
- HttpError: Non-OK upstream response with status and body
- CircuitOpenError: Direct path skipped by the circuit breaker
- ProxyError: Relay service answered without usable content
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app_store_fetch.errors.classification import ErrorClass, classify_status

if TYPE_CHECKING:
    import httpx


@dataclass
class ErrorContext:
    """Structured error context for diagnostics."""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    source: str | None = None
    """Error source (e.g., 'transport', 'upstream', 'breaker')"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class FetchError(Exception):
    """Base class for all app-store-fetch errors.

    Attributes:
        message: Human-readable error message
        context: Structured error context
        error_class: Classification used for retry/fallback decisions,
            None when the error is not an upstream failure
    """

    error_class: ErrorClass | None = None

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> FetchError:
        """Add a hint to this error."""
        self.context.hint = hint
        return self


class TransportError(FetchError):
    """No response could be obtained from the network.

    Raised when:
    - Connection failure
    - DNS/TLS errors
    - Protocol errors
    """

    error_class = ErrorClass.NETWORK

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="transport")
        if url:
            ctx.details["url"] = url
        super().__init__(message, ctx)
        self.url = url
        self.__cause__ = cause


class AttemptTimeoutError(TransportError):
    """An attempt did not settle within its deadline.

    The underlying operation is not cancelled; it keeps running detached
    and its eventual outcome is discarded.
    """

    error_class = ErrorClass.TIMEOUT

    def __init__(
        self,
        message: str,
        *,
        timeout_ms: float,
        url: str | None = None,
    ) -> None:
        ctx = ErrorContext(source="timeout")
        ctx.details["timeout_ms"] = timeout_ms
        super().__init__(message, ctx, url=url)
        self.timeout_ms = timeout_ms


class HttpError(FetchError):
    """Upstream answered with a non-OK status.

    Attributes:
        status_code: HTTP status code
        status_text: Reason phrase
        body: Response body text (best effort, may be empty)
        url: Requested URL
    """

    def __init__(
        self,
        status_code: int,
        status_text: str = "",
        body: str = "",
        *,
        url: str | None = None,
    ) -> None:
        ctx = ErrorContext(source="upstream")
        ctx.details["status_code"] = status_code
        if url:
            ctx.details["url"] = url
        message = f"HTTP {status_code}: {status_text}" if status_text else f"HTTP {status_code}"
        super().__init__(message, ctx)
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        self.url = url
        self.error_class = classify_status(status_code) or ErrorClass.CLIENT_ERROR

    @classmethod
    def from_response(cls, response: httpx.Response) -> HttpError:
        """Create an HttpError from a received response.

        Args:
            response: A fully read httpx response

        Returns:
            HttpError carrying status, reason phrase and body text
        """
        body = ""
        with suppress(Exception):
            body = response.text

        url = None
        with suppress(RuntimeError):
            url = str(response.request.url)

        return cls(
            status_code=response.status_code,
            status_text=response.reason_phrase,
            body=body,
            url=url,
        )


class CircuitOpenError(FetchError):
    """Raised when the breaker skipped the direct path and nothing else worked."""

    error_class = ErrorClass.NETWORK

    def __init__(
        self,
        message: str = "Circuit breaker is open",
        time_until_close: float | None = None,
    ) -> None:
        ctx = ErrorContext(source="breaker")
        if time_until_close is not None:
            ctx.details["time_until_close"] = time_until_close
        super().__init__(message, ctx)
        self.time_until_close = time_until_close


class ProxyError(FetchError):
    """Relay service answered without usable content."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        ctx = ErrorContext(source="proxy")
        if status_code is not None:
            ctx.details["status_code"] = status_code
        super().__init__(message, ctx)
        self.status_code = status_code

"""App Store 元数据抓取：带熔断、限流、重试与降级的请求管线。

app-store-fetch: resilient fetching of mobile application metadata.

Every upstream call goes through one pipeline that batches requests into
rate windows, retries transient failures, stops hammering a blocking
upstream with a circuit breaker, and falls back to alternative retrieval
strategies when the direct path fails.
"""
from __future__ import annotations

from app_store_fetch.config import FetchConfig
from app_store_fetch.errors import (
    AttemptTimeoutError,
    CircuitOpenError,
    ErrorClass,
    FetchError,
    HttpError,
    ProxyError,
    TransportError,
)
from app_store_fetch.lookup import lookup
from app_store_fetch.markets import store_id
from app_store_fetch.request import RequestOrchestrator, configure, request
from app_store_fetch.resilience.context import (
    ResilienceContext,
    get_default_context,
    set_default_context,
)
from app_store_fetch.transport import HttpTransport
from app_store_fetch.types import App

__version__ = "0.1.0"

__all__ = [
    "App",
    "AttemptTimeoutError",
    "CircuitOpenError",
    "ErrorClass",
    "FetchConfig",
    "FetchError",
    "HttpError",
    "HttpTransport",
    "ProxyError",
    "RequestOrchestrator",
    "ResilienceContext",
    "TransportError",
    "__version__",
    "configure",
    "get_default_context",
    "lookup",
    "request",
    "set_default_context",
    "store_id",
]

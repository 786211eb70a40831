"""错误体系：上游请求失败的结构化错误类型。

Error hierarchy for app-store-fetch.

Provides structured error types and the upstream failure classification.
"""

from app_store_fetch.errors.base import (
    AttemptTimeoutError,
    CircuitOpenError,
    ErrorContext,
    FetchError,
    HttpError,
    ProxyError,
    TransportError,
)
from app_store_fetch.errors.classification import (
    ErrorClass,
    classify_status,
    is_fallbackable,
    is_retryable,
)

__all__ = [
    "AttemptTimeoutError",
    "CircuitOpenError",
    "ErrorClass",
    "ErrorContext",
    "FetchError",
    "HttpError",
    "ProxyError",
    "TransportError",
    "classify_status",
    "is_fallbackable",
    "is_retryable",
]

"""
Telemetry module for app-store-fetch.

Provides structured, rate-limit aware logging.
"""

from app_store_fetch.telemetry.logger import (
    FetchLogger,
    JsonFormatter,
    LogContext,
    LogLevel,
    SensitiveDataMasker,
    TextFormatter,
    clear_log_context,
    configure_logging,
    get_log_context,
    get_logger,
    reset_log_context,
    set_log_context,
)

__all__ = [
    "FetchLogger",
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "SensitiveDataMasker",
    "TextFormatter",
    "clear_log_context",
    "configure_logging",
    "get_log_context",
    "get_logger",
    "reset_log_context",
    "set_log_context",
]

"""
Structured logging for app-store-fetch.

Provides context-aware logging with sensitive header masking and a
rate-limited warning variant for noisy upstream failures.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
import time
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

# Context variable for request-scoped logging context
_log_context: ContextVar[dict[str, Any] | None] = ContextVar("log_context", default=None)


class LogLevel(str, Enum):
    """Log levels, ordered error < warning < info < debug."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"

    def to_logging_level(self) -> int:
        """Convert to standard logging level."""
        return getattr(logging, self.value)

    @classmethod
    def parse(cls, value: str | None, default: LogLevel) -> LogLevel:
        """Parse a level name, accepting ``warn`` as an alias."""
        if not value:
            return default
        name = value.strip().upper()
        if name == "WARN":
            name = "WARNING"
        try:
            return cls(name)
        except ValueError:
            return default


@dataclass
class LogContext:
    """Request-scoped logging context.

    Attributes:
        request_id: Identifier of the logical request
        url: Target URL of the request
        strategy: Retrieval strategy currently running
        extra: Additional context fields
    """

    request_id: str | None = None
    url: str | None = None
    strategy: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        if self.request_id:
            result["request_id"] = self.request_id
        if self.url:
            result["url"] = self.url
        if self.strategy:
            result["strategy"] = self.strategy
        result.update(self.extra)
        return result

    def with_extra(self, **kwargs: Any) -> LogContext:
        """Create new context with additional fields."""
        return LogContext(
            request_id=self.request_id,
            url=self.url,
            strategy=self.strategy,
            extra={**self.extra, **kwargs},
        )


def get_log_context() -> LogContext:
    """Get current logging context."""
    data = _log_context.get()
    if not data:
        return LogContext()
    known = {k: data[k] for k in ("request_id", "url", "strategy") if k in data}
    extra = {k: v for k, v in data.items() if k not in known}
    return LogContext(**known, extra=extra)


def set_log_context(context: LogContext) -> Token[dict[str, Any] | None]:
    """Set logging context for current async context.

    Returns:
        Token restoring the previous context via ``reset_log_context``
    """
    return _log_context.set(context.to_dict())


def reset_log_context(token: Token[dict[str, Any] | None]) -> None:
    """Restore the context that was current before ``set_log_context``."""
    _log_context.reset(token)


def clear_log_context() -> None:
    """Clear logging context."""
    _log_context.set(None)


class SensitiveDataMasker:
    """Masks credentials and cookies that may appear in logged headers."""

    DEFAULT_PATTERNS: ClassVar[list[tuple[str, str]]] = [
        (r"(Bearer\s+)([^\s\"']+)", r"\1***REDACTED***"),
        (r"(Authorization[\"']?\s*[:=]\s*[\"']?)([^\"'\s,}]+)", r"\1***REDACTED***"),
        (r"(Cookie[\"']?\s*[:=]\s*[\"']?)([^\"'}]+)", r"\1***REDACTED***"),
        (r"(x-api-key[\"']?\s*[:=]\s*[\"']?)([^\"'\s,}]+)", r"\1***REDACTED***"),
    ]

    SENSITIVE_KEYS: ClassVar[tuple[str, ...]] = (
        "authorization",
        "cookie",
        "api-key",
        "api_key",
        "token",
        "secret",
        "password",
    )

    def __init__(self, patterns: list[tuple[str, str]] | None = None) -> None:
        self._patterns = [
            (re.compile(p, re.IGNORECASE), r)
            for p, r in (patterns or self.DEFAULT_PATTERNS)
        ]

    def mask(self, text: str) -> str:
        """Mask sensitive data in text."""
        result = text
        for pattern, replacement in self._patterns:
            result = pattern.sub(replacement, result)
        return result

    def mask_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        """Mask sensitive values in a (possibly nested) dictionary."""
        result: dict[str, Any] = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in self.SENSITIVE_KEYS):
                result[key] = "***REDACTED***"
            elif isinstance(value, str):
                result[key] = self.mask(value)
            elif isinstance(value, dict):
                result[key] = self.mask_dict(value)
            else:
                result[key] = value
        return result


class JsonFormatter(logging.Formatter):
    """JSON log formatter."""

    def __init__(
        self,
        masker: SensitiveDataMasker | None = None,
        include_timestamp: bool = True,
    ) -> None:
        super().__init__()
        self._masker = masker or SensitiveDataMasker()
        self._include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": self._masker.mask(record.getMessage()),
        }

        if self._include_timestamp:
            log_data["timestamp"] = time.strftime(
                "%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)
            ) + f".{int(record.msecs):03d}Z"

        context = get_log_context()
        if context_dict := context.to_dict():
            log_data["context"] = context_dict

        if hasattr(record, "extra_fields"):
            log_data.update(self._masker.mask_dict(record.extra_fields))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    def __init__(
        self,
        masker: SensitiveDataMasker | None = None,
        include_context: bool = True,
    ) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self._masker = masker or SensitiveDataMasker()
        self._include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as text."""
        original_msg = record.msg
        record.msg = self._masker.mask(str(record.msg))
        result = super().format(record)
        record.msg = original_msg

        fields: dict[str, Any] = {}
        if self._include_context:
            fields.update(get_log_context().to_dict())
        if hasattr(record, "extra_fields"):
            fields.update(self._masker.mask_dict(record.extra_fields))
        if fields:
            result = f"{result} | " + " ".join(f"{k}={v}" for k, v in fields.items())

        return result


@dataclass
class _ThrottleBucket:
    last: float = float("-inf")
    suppressed: int = 0


class FetchLogger:
    """Logger for app-store-fetch with structured fields.

    Example:
        >>> logger = FetchLogger.get_logger("app_store_fetch.request")
        >>> logger.info("Request started", url="https://itunes.apple.com/lookup")
        >>> logger.warn_throttled("blocked_403", 60, "Primary request blocked")
    """

    _loggers: ClassVar[dict[str, logging.Logger]] = {}
    _level: ClassVar[LogLevel] = LogLevel.parse(
        os.getenv("APP_STORE_FETCH_LOG_LEVEL"), LogLevel.WARNING
    )
    _formatter: ClassVar[logging.Formatter | None] = None
    _handler: ClassVar[logging.Handler | None] = None
    _buckets: ClassVar[dict[str, _ThrottleBucket]] = {}

    @classmethod
    def configure(
        cls,
        level: LogLevel | str = LogLevel.WARNING,
        format: str = "text",
        stream: Any = None,
        masker: SensitiveDataMasker | None = None,
    ) -> None:
        """Configure global logging settings.

        Args:
            level: Log level (enum or name)
            format: Output format ('json' or 'text')
            stream: Output stream (default: stderr)
            masker: Sensitive data masker
        """
        if isinstance(level, str) and not isinstance(level, LogLevel):
            level = LogLevel.parse(level, cls._level)
        cls._level = level

        if format == "json":
            cls._formatter = JsonFormatter(masker=masker)
        else:
            cls._formatter = TextFormatter(masker=masker)

        cls._handler = logging.StreamHandler(stream or sys.stderr)
        cls._handler.setFormatter(cls._formatter)
        cls._handler.setLevel(level.to_logging_level())

        for logger in cls._loggers.values():
            logger.handlers.clear()
            logger.addHandler(cls._handler)
            logger.setLevel(level.to_logging_level())

    @classmethod
    def get_level(cls) -> LogLevel:
        """Get the current global log level."""
        return cls._level

    @classmethod
    def get_logger(cls, name: str) -> FetchLogger:
        """Get or create a logger.

        Args:
            name: Logger name

        Returns:
            Logger instance
        """
        if name not in cls._loggers:
            logger = logging.getLogger(name)
            logger.setLevel(cls._level.to_logging_level())

            if cls._handler:
                logger.handlers.clear()
                logger.addHandler(cls._handler)
            elif not logger.handlers:
                handler = logging.StreamHandler(sys.stderr)
                handler.setFormatter(TextFormatter())
                logger.addHandler(handler)

            logger.propagate = False
            cls._loggers[name] = logger

        return cls(cls._loggers[name])

    @classmethod
    def reset_throttle(cls) -> None:
        """Forget all rate-limited warning buckets."""
        cls._buckets.clear()

    def __init__(self, logger: logging.Logger) -> None:
        """Initialize with underlying logger."""
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(
        self, level: int, msg: str, exc_info: bool = False, **kwargs: Any
    ) -> None:
        extra = {"extra_fields": kwargs} if kwargs else {}
        self._logger.log(level, msg, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, exc_info=exc_info, **kwargs)

    def warn_throttled(
        self, key: str, window_seconds: float, msg: str, **kwargs: Any
    ) -> bool:
        """Log a warning at most once per window for a given key.

        Warnings dropped inside the window are counted and reported on the
        next emitted warning for the same key.

        Args:
            key: Bucket identifier shared by similar warnings
            window_seconds: Minimum spacing between emitted warnings
            msg: Warning message

        Returns:
            True if the warning was emitted
        """
        if not self._logger.isEnabledFor(logging.WARNING):
            return False

        now = time.monotonic()
        bucket = self._buckets.setdefault(key, _ThrottleBucket())
        if now - bucket.last < window_seconds:
            bucket.suppressed += 1
            return False

        if bucket.suppressed:
            msg = f"{msg} (suppressed {bucket.suppressed} similar logs)"
        self._log(logging.WARNING, msg, **kwargs)
        bucket.last = now
        bucket.suppressed = 0
        return True


def get_logger(name: str) -> FetchLogger:
    """Get a logger instance.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return FetchLogger.get_logger(name)


def configure_logging(
    level: LogLevel | str = LogLevel.WARNING,
    format: str = "text",
    stream: Any = None,
) -> None:
    """Configure logging for every app-store-fetch logger."""
    FetchLogger.configure(level=level, format=format, stream=stream)

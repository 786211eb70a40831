"""
Fallback chain of alternative retrieval strategies.

Strategies are tagged async callables taking the request context and
returning body text. The chain tries them in insertion order, once each;
a failing stage is logged and recorded, and the next stage runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app_store_fetch.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = get_logger("app_store_fetch.resilience.fallback")

# Stage failures are logged at most once per window per stage.
_WARN_WINDOW_SECONDS = 60


@dataclass
class FallbackConfig:
    """Configuration for the fallback chain.

    Attributes:
        enabled: Whether the chain runs at all
        proxy_url: Base URL of the content relay used by the proxy stage
    """

    enabled: bool = True
    proxy_url: str = "https://api.allorigins.win/get"


@dataclass
class FallbackStrategy:
    """A stage in the fallback chain.

    Attributes:
        name: Identifier for this stage
        operation: Async callable ``(context) -> body text``
        enabled: Whether this stage is tried
    """

    name: str
    operation: Callable[[Any], Awaitable[str]]
    enabled: bool = True


@dataclass
class FallbackResult:
    """Result of a fallback chain execution.

    Attributes:
        success: Whether a stage produced a body
        value: Body text (if success)
        strategy_used: Name of the stage that succeeded
        strategies_tried: Stages attempted, in order
        errors: Mapping of stage names to their errors
    """

    success: bool
    value: str | None = None
    strategy_used: str | None = None
    strategies_tried: list[str] = field(default_factory=list)
    errors: dict[str, Exception] = field(default_factory=dict)


class FallbackChain:
    """Ordered chain of alternative retrieval strategies.

    Example:
        >>> chain = FallbackChain()
        >>> chain.add_strategy("direct_alternate", fetch_with_alternate_headers)
        >>> chain.add_strategy("relay_proxy", fetch_through_relay)
        >>> result = await chain.execute(request_context)
    """

    def __init__(self, config: FallbackConfig | None = None) -> None:
        self._config = config or FallbackConfig()
        self._strategies: list[FallbackStrategy] = []

    @property
    def config(self) -> FallbackConfig:
        return self._config

    def add_strategy(
        self,
        name: str,
        operation: Callable[[Any], Awaitable[str]],
        enabled: bool = True,
    ) -> FallbackChain:
        """Append a strategy to the end of the chain.

        Args:
            name: Stage identifier
            operation: Async callable taking the request context
            enabled: Whether the stage is tried

        Returns:
            Self for chaining
        """
        self._strategies.append(
            FallbackStrategy(name=name, operation=operation, enabled=enabled)
        )
        return self

    def remove_strategy(self, name: str) -> bool:
        """Remove a strategy from the chain.

        Returns:
            True if removed, False if not found
        """
        for i, strategy in enumerate(self._strategies):
            if strategy.name == name:
                self._strategies.pop(i)
                return True
        return False

    def set_enabled(self, name: str, enabled: bool) -> bool:
        """Enable or disable a strategy.

        Returns:
            True if the strategy was found
        """
        for strategy in self._strategies:
            if strategy.name == name:
                strategy.enabled = enabled
                return True
        return False

    def get_strategies(self) -> list[str]:
        """Get names of enabled strategies, in execution order."""
        return [s.name for s in self._strategies if s.enabled]

    async def execute(self, context: Any) -> FallbackResult:
        """Run the chain until a stage succeeds.

        Args:
            context: Request context handed to every stage

        Returns:
            FallbackResult with outcome
        """
        if not self._config.enabled:
            return FallbackResult(success=False)

        errors: dict[str, Exception] = {}
        tried: list[str] = []

        for strategy in self._strategies:
            if not strategy.enabled:
                continue

            tried.append(strategy.name)
            logger.debug(f"Trying fallback strategy {strategy.name}")
            try:
                value = await strategy.operation(context)
            except Exception as e:
                errors[strategy.name] = e
                logger.warn_throttled(
                    f"{strategy.name}_failed",
                    _WARN_WINDOW_SECONDS,
                    f"Fallback strategy {strategy.name} failed: {e}",
                )
                continue

            logger.debug(f"Fallback strategy {strategy.name} succeeded")
            return FallbackResult(
                success=True,
                value=value,
                strategy_used=strategy.name,
                strategies_tried=tried,
                errors=errors,
            )

        if tried:
            logger.warn_throttled(
                "all_alternatives_failed",
                _WARN_WINDOW_SECONDS,
                "All alternative methods failed, falling back to original error",
            )
        return FallbackResult(success=False, strategies_tried=tried, errors=errors)

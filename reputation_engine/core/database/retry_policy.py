"""
Retry policy for optimistic-concurrency conflicts and other transient errors.

Executes a zero-argument async operation and re-runs it when it raises one
of the configured retriable exceptions, sleeping with capped exponential
backoff plus random jitter between attempts:

    backoff = min(initial * 2^(attempt-1), max) + random(0, jitter)

The caller owns the transaction. Wrap the operation that *opens* the
transaction, never work inside one.

Configuration
-------------
- RECOMPUTE_MAX_ATTEMPTS (default: 3)
- RECOMPUTE_INITIAL_BACKOFF_MS (default: 25)
- RECOMPUTE_MAX_BACKOFF_MS (default: 500)
- RECOMPUTE_JITTER_MS (default: 25)
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from reputation_engine.core.config import Config
from reputation_engine.core.logging import get_logger
from reputation_engine.modules.shared.exceptions import ConcurrencyConflictError

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Retry behaviour.

    Attributes:
        max_attempts: Attempts including the first one
        initial_backoff_ms: Backoff before the second attempt
        max_backoff_ms: Upper bound of the exponential part
        jitter_ms: Maximum random jitter added to each backoff
        retriable_exceptions: Exception types that trigger another attempt
    """

    max_attempts: int = 3
    initial_backoff_ms: int = 25
    max_backoff_ms: int = 500
    jitter_ms: int = 25
    retriable_exceptions: Tuple[Type[BaseException], ...] = (ConcurrencyConflictError,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    @classmethod
    def from_config(
        cls,
        retriable_exceptions: Optional[Tuple[Type[BaseException], ...]] = None,
    ) -> RetryConfig:
        """Build from the RECOMPUTE_* Config keys."""
        config = cls(
            max_attempts=int(getattr(Config, "RECOMPUTE_MAX_ATTEMPTS", 3)),
            initial_backoff_ms=int(getattr(Config, "RECOMPUTE_INITIAL_BACKOFF_MS", 25)),
            max_backoff_ms=int(getattr(Config, "RECOMPUTE_MAX_BACKOFF_MS", 500)),
            jitter_ms=int(getattr(Config, "RECOMPUTE_JITTER_MS", 25)),
        )
        if retriable_exceptions is not None:
            config.retriable_exceptions = retriable_exceptions
        return config


class RetryPolicy:
    """
    Execute async operations with retry semantics.

    Usage:
        >>> policy = RetryPolicy.from_config()
        >>> result = await policy.execute(
        ...     lambda: recompute_once(user_identifier),
        ...     operation_name="progression.recompute",
        ... )
    """

    def __init__(self, config: Optional[RetryConfig] = None) -> None:
        self._config = config or RetryConfig()

    @classmethod
    def from_config(cls) -> RetryPolicy:
        return cls(RetryConfig.from_config())

    @property
    def max_attempts(self) -> int:
        return self._config.max_attempts

    def _is_retriable(self, exc: BaseException) -> bool:
        return isinstance(exc, self._config.retriable_exceptions)

    def _compute_backoff_ms(self, attempt: int) -> int:
        """Backoff before the attempt after ``attempt`` (1-indexed)."""
        exponent = max(attempt - 1, 0)
        capped = min(self._config.initial_backoff_ms * (2**exponent), self._config.max_backoff_ms)
        jitter = random.randint(0, self._config.jitter_ms) if self._config.jitter_ms > 0 else 0
        return capped + jitter

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        operation_name: str,
        context: Optional[dict[str, Any]] = None,
    ) -> T:
        """
        Run ``operation`` until it succeeds or retries are exhausted.

        Args:
            operation: Zero-argument async callable
            operation_name: Stable identifier for logs, e.g. "progression.recompute"
            context: Extra structured log fields

        Returns:
            The operation's result

        Raises:
            BaseException: The last exception, once attempts are exhausted
                or immediately when it is not retriable
        """
        ctx_extra = dict(context) if context else {}
        ctx_extra["operation"] = operation_name

        attempt = 0
        while True:
            attempt += 1
            try:
                logger.debug(
                    "Executing operation with retry policy",
                    extra={**ctx_extra, "attempt": attempt},
                )
                return await operation()

            except Exception as exc:
                error_type = type(exc).__name__
                retriable = self._is_retriable(exc)
                will_retry = retriable and attempt < self._config.max_attempts

                if not will_retry:
                    if retriable:
                        logger.warning(
                            "Operation retries exhausted",
                            extra={
                                **ctx_extra,
                                "attempt": attempt,
                                "error_type": error_type,
                                "max_attempts": self._config.max_attempts,
                            },
                        )
                    raise

                backoff_ms = self._compute_backoff_ms(attempt)
                logger.info(
                    "Retriable failure; backing off before retry",
                    extra={
                        **ctx_extra,
                        "attempt": attempt,
                        "error_type": error_type,
                        "backoff_ms": backoff_ms,
                    },
                )
                await asyncio.sleep(backoff_ms / 1000.0)

"""
Outpost Stock — Retry Combinator

Wraps any awaitable call with a fixed attempt budget and a backoff between
failures. The caller owns the policy: the fetcher itself never retries.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

BackoffFn = Callable[[int], float]


class RetryExhausted(Exception):
    """Raised when every attempt of a retried call has failed."""

    def __init__(self, attempts: int, last_error: BaseException | None, label: str = "") -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.label = label
        super().__init__(
            f"{label or 'operation'} failed after {attempts} attempts: {last_error}"
        )


def linear_backoff(base_delay_seconds: float) -> BackoffFn:
    """Delay of base * attempt: 1x after the first failure, 2x after the second..."""
    return lambda attempt: base_delay_seconds * attempt


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    backoff: BackoffFn,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    label: str = "",
) -> T:
    """
    Call `operation` until it succeeds or the attempt budget runs out.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt.
        attempts: Total number of attempts (>= 1).
        backoff: Maps the failed attempt number (1-based) to a sleep in seconds.
        retry_on: Exception types that trigger a retry; anything else propagates.
        label: Name used in logs and in the RetryExhausted message.

    Raises:
        RetryExhausted: After `attempts` failures, chained to the last error.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    last_error: BaseException | None = None

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            last_error = e
            logger.warning(
                "retry_attempt_failed",
                label=label,
                attempt=attempt,
                max_attempts=attempts,
                error=str(e),
                error_type=type(e).__name__,
            )
            if attempt == attempts:
                break
            await asyncio.sleep(backoff(attempt))

    raise RetryExhausted(attempts, last_error, label) from last_error

"""Retry logic with backoff and write-token recovery.

This module provides:
- classify: Decide how to react to a failed remote operation
- with_retry: Generic async retry driver consuming classify's decisions

Failure classes:
- Token rejected: refresh the write token and retry immediately
- Transient (5xx, connection reset, timeout): wait per the backoff schedule
- Anything else with a definite outcome: fail immediately
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import TypeVar

import httpx

from wikisync.client.api import APIError, TokenRejectedError
from wikisync.core.config import DEFAULT_RETRY_DELAYS

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 5

# Network-related exceptions that indicate connectivity issues
NETWORK_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)


class RetryAction(Enum):
    """What to do after a failed attempt."""

    REFRESH_TOKEN = auto()
    RETRY_AFTER_DELAY = auto()
    FAIL = auto()


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of classifying a failure.

    Attributes:
        action: Action to take before the next attempt.
        delay: Seconds to wait (RETRY_AFTER_DELAY only).
    """

    action: RetryAction
    delay: float = 0.0


def backoff_delay(attempt: int, delays: Sequence[float] = DEFAULT_RETRY_DELAYS) -> float:
    """Return the wait after the given (1-based) failed attempt.

    Attempts beyond the schedule reuse its last entry.
    """
    index = min(max(attempt, 1), len(delays)) - 1
    return delays[index]


def is_transient(error: BaseException) -> bool:
    """Check whether an error is worth retrying after a pause."""
    if isinstance(error, APIError):
        return error.status_code is not None and error.status_code >= 500
    return isinstance(error, NETWORK_EXCEPTIONS)


def classify(
    error: BaseException,
    attempt: int,
    delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
) -> RetryDecision:
    """Classify a failed attempt.

    Args:
        error: Exception raised by the attempt.
        attempt: 1-based number of the attempt that failed.
        delays: Backoff schedule in seconds.

    Returns:
        The decision for the next attempt.
    """
    if isinstance(error, TokenRejectedError):
        return RetryDecision(RetryAction.REFRESH_TOKEN)
    if is_transient(error):
        return RetryDecision(RetryAction.RETRY_AFTER_DELAY, backoff_delay(attempt, delays))
    return RetryDecision(RetryAction.FAIL)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    label: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
    refresh_token: Callable[[], Awaitable[object]] | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Execute an async operation with bounded retry.

    Args:
        operation: Zero-argument coroutine function performing one remote call.
        label: Human-readable name used in log messages.
        max_attempts: Total attempts, token refreshes included.
        delays: Backoff schedule in seconds, indexed by attempt.
        refresh_token: Coroutine function forcing a write-token refresh.
            Without it, a rejected token fails immediately.
        sleep: Awaitable sleep (replaced in tests).

    Returns:
        Result of the operation.

    Raises:
        The last observed exception if the operation does not succeed.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            result = await operation()
        except Exception as e:
            decision = classify(e, attempt, delays)

            if decision.action is RetryAction.REFRESH_TOKEN and refresh_token is None:
                decision = RetryDecision(RetryAction.FAIL)

            if decision.action is RetryAction.FAIL:
                logger.error(f"Non-retryable error for {label}: {e}")
                raise

            if attempt == max_attempts:
                logger.error(f"All {max_attempts} attempts failed for {label}. Last error: {e}")
                raise

            if decision.action is RetryAction.REFRESH_TOKEN:
                logger.info(f"Invalid token detected for {label}, refreshing...")
                await refresh_token()  # type: ignore[misc]
                continue

            logger.warning(
                f"Attempt {attempt} failed for {label}: {e}. "
                f"Retrying in {decision.delay:g}s..."
            )
            await sleep(decision.delay)
        else:
            if attempt > 1:
                logger.info(f"Successfully completed {label} after {attempt} attempts")
            return result

    # Should not reach here, but satisfy type checker
    raise RuntimeError("Unexpected retry loop exit")

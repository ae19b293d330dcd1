"""
Retry with exponential backoff.

Every network call site (Notion queries, block fetches, LLM generation)
goes through ``with_retry``. The delay schedule is deterministic:
``base_delay_ms * backoff_factor ** (attempt - 1)``, no jitter.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from .config import RetryConfig
from .errors import RetryExhausted

logger = logging.getLogger("notebrief.common.retry")

T = TypeVar("T")


def backoff_delay_ms(attempt: int, base_delay_ms: float, backoff_factor: float) -> float:
    """Delay to wait after the given (1-based) failed attempt."""
    return base_delay_ms * (backoff_factor ** (attempt - 1))


def with_retry(
    operation: Callable[[], T],
    max_retries: int,
    label: str,
    *,
    base_delay_ms: float = 1000,
    backoff_factor: float = 2.0,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """
    Run ``operation`` up to ``max_retries`` times.

    Args:
        operation: Zero-argument callable to execute
        max_retries: Total number of attempts (at least 1)
        label: Operation name used in logs and in the RetryExhausted message
        base_delay_ms: Delay after the first failure
        backoff_factor: Multiplier applied to each subsequent delay
        sleep: Sleep function taking seconds (defaults to time.sleep)

    Returns:
        Whatever ``operation`` returns on its first successful attempt

    Raises:
        RetryExhausted: All attempts failed
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    sleep = sleep or time.sleep
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_retries + 1):
        try:
            return operation()
        except Exception as e:
            last_error = e
            if attempt == max_retries:
                break
            delay = backoff_delay_ms(attempt, base_delay_ms, backoff_factor)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.0fms",
                label, attempt, max_retries, e, delay,
            )
            sleep(delay / 1000.0)

    logger.error("%s failed after %d attempt(s): %s", label, max_retries, last_error)
    raise RetryExhausted(label, max_retries) from last_error


def retry_from_config(
    operation: Callable[[], T],
    config: RetryConfig,
    label: str,
    *,
    max_retries: Optional[int] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """``with_retry`` using the schedule from a RetryConfig."""
    return with_retry(
        operation,
        max_retries or config.max_retries,
        label,
        base_delay_ms=config.base_delay_ms,
        backoff_factor=config.backoff_factor,
        sleep=sleep,
    )

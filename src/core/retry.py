# src/core/retry.py - v1
"""Bounded exponential backoff with jitter for async operations.

Used around every store call by the tiered gateway, and by the document
session when the caller asks for a retry.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from doccache.core.errors import FetchError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Retry parameters. ``max_retries=3`` means four attempts in total."""

    max_retries: int = 3
    base_delay_s: float = 1.0
    max_delay_s: float = 10.0
    jitter: float = 0.2


STORE_RETRY_CONFIG = RetryConfig(max_retries=3, base_delay_s=0.5, max_delay_s=5.0)
SESSION_RETRY_CONFIG = RetryConfig(max_retries=3, base_delay_s=1.0, max_delay_s=10.0)


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay before retry ``attempt`` (0-based).

    ``min(base * 2**attempt, max)`` perturbed by up to +/- ``jitter``.
    """
    delay = min(config.base_delay_s * (2**attempt), config.max_delay_s)
    if config.jitter:
        delay += delay * random.uniform(-config.jitter, config.jitter)  # noqa: S311
    return max(delay, 0.0)


def is_transient(error: Exception) -> bool:
    """Default retry predicate for store and fetch calls."""
    if isinstance(error, (StoreError, FetchError)):
        return error.transient
    return True


async def with_retry(
    op: Callable[[], Awaitable[T]],
    max_retries: int | None = None,
    *,
    config: RetryConfig | None = None,
    operation: str = "operation",
    should_retry: Callable[[Exception], bool] | None = None,
) -> T:
    """Execute ``op`` with retry logic.

    Args:
        op: Zero-argument coroutine factory, called once per attempt.
        max_retries: Overrides ``config.max_retries`` when given.
        config: Backoff parameters. Defaults to ``RetryConfig()``.
        operation: Label used in log messages.
        should_retry: Predicate deciding whether an error is worth another
            attempt. Every ``Exception`` is retried when omitted.

    Raises:
        The last error raised by ``op`` once retries are exhausted, or the
        first error ``should_retry`` rejects.
    """
    cfg = config or RetryConfig()
    retries = cfg.max_retries if max_retries is None else max_retries
    attempt = 0

    while True:
        try:
            return await op()
        except Exception as e:
            if attempt >= retries or (should_retry is not None and not should_retry(e)):
                if attempt:
                    logger.error(
                        "%s failed after %d attempt(s): %s", operation, attempt + 1, e,
                    )
                raise

            delay = compute_delay(cfg, attempt)
            attempt += 1
            logger.warning(
                "%s failed (attempt %d/%d): %s, retrying in %.2fs",
                operation, attempt, retries + 1, e, delay,
            )
            await asyncio.sleep(delay)

"""Bounded retry with exponential backoff for transient node failures."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .exceptions import NetworkError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behaviour.

    ``max_attempts`` counts the first call, so ``1`` disables retries.
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_errors: tuple[type[Exception], ...] = field(default_factory=lambda: (NetworkError,))


NO_RETRY = RetryConfig(max_attempts=1)


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Delay in seconds before retry number ``attempt`` (zero-based)."""
    delay = min(config.base_delay * (config.exponential_base**attempt), config.max_delay)
    if config.jitter:
        delay = random.uniform(0, delay)
    return delay


def retry_call(
    fn: Callable[[], T],
    config: RetryConfig,
    *,
    description: str,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn`` until it succeeds, a non-retryable error escapes, or attempts run out."""
    attempts = max(1, config.max_attempts)
    for attempt in range(attempts):
        try:
            return fn()
        except config.retryable_errors as exc:
            if attempt >= attempts - 1:
                logger.warning("%s failed after %s attempts: %s", description, attempts, exc)
                raise
            delay = calculate_delay(attempt, config)
            logger.warning(
                "%s failed (attempt %s/%s), retrying in %.2fs: %s",
                description,
                attempt + 1,
                attempts,
                delay,
                exc,
            )
            sleep(delay)

    raise RuntimeError("Retry loop exited without a result")  # pragma: no cover

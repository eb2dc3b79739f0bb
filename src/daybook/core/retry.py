"""Bounded retries for durable storage calls.

Transient I/O failures (``OSError`` and subclasses) are retried with
exponential backoff; everything else propagates immediately.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from ..observability.loguru_config import get_logger

logger = get_logger("storage")

__all__ = [
    "RetryPolicy",
    "create_retry_policy",
    "with_retry",
]

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry policy with exponential backoff.

    Attributes
    ----------
    max_retries
        Maximum number of retry attempts after the first call
    base_delay
        Base delay in seconds for exponential backoff
    max_delay
        Maximum delay between retries
    exponential_base
        Base for exponential backoff calculation
    jitter
        Add random jitter to delays (0.0-1.0)
    """

    max_retries: int = 3
    base_delay: float = 0.05
    max_delay: float = 1.0
    exponential_base: float = 2.0
    jitter: float = 0.1

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for retry attempt (0-indexed)."""
        delay = min(self.base_delay * (self.exponential_base**attempt), self.max_delay)

        if self.jitter > 0:
            delay += delay * self.jitter * random.random()

        return delay

    def should_retry(self, attempt: int, error: Exception) -> bool:
        """Check if error should be retried.

        Parameters
        ----------
        attempt
            Current attempt number (0-indexed)
        error
            Exception that occurred
        """
        if attempt >= self.max_retries:
            return False

        return isinstance(error, OSError)


def with_retry(func: Callable[..., T], retry_policy: RetryPolicy, *args: Any, **kwargs: Any) -> T:
    """Execute function with retry policy.

    Parameters
    ----------
    func
        Function to execute
    retry_policy
        Retry policy to apply
    *args
        Positional arguments for func
    **kwargs
        Keyword arguments for func

    Returns
    -------
    Any
        Result from func

    Raises
    ------
    Exception
        The last error once retries are exhausted, or any non-retryable error
    """
    attempt = 0

    while True:
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            if not retry_policy.should_retry(attempt, exc):
                if attempt:
                    logger.error(f"Giving up after {attempt + 1} attempts: {exc}")
                raise

            delay = retry_policy.get_delay(attempt)
            logger.warning(
                f"Attempt {attempt + 1} failed, retrying in {delay:.2f}s",
                error=str(exc),
                attempt=attempt + 1,
                max_retries=retry_policy.max_retries,
            )
            time.sleep(delay)
            attempt += 1


def create_retry_policy(*, max_retries: int = 3, base_delay: float = 0.05, max_delay: float = 1.0) -> RetryPolicy:
    """Factory function to create a storage retry policy."""
    if max_retries < 0:
        raise ValueError(f"max_retries must be non-negative, got: {max_retries}")

    return RetryPolicy(max_retries=max_retries, base_delay=base_delay, max_delay=max_delay)

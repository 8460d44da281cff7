"""
Retry logic for Shotkeeper.

Exponential backoff with jitter for calls to flaky collaborators
(the recognition API, mostly).
"""

import dataclasses
import functools
import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import ParamSpec, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter_factor: float = 0.1
    retryable_exceptions: tuple[type[Exception], ...] = (ConnectionError, TimeoutError)

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate the delay before the given retry.

        Args:
            attempt: Retry number, 0-indexed

        Returns:
            Delay in seconds, capped at max_delay
        """
        delay = self.base_delay * (self.exponential_base**attempt)
        delay += delay * self.jitter_factor * (2 * random.random() - 1)
        return min(delay, self.max_delay)


class RetryError(Exception):
    """Raised when all retries are exhausted."""

    def __init__(self, message: str, attempts: int, last_error: Exception | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


def retry_with_backoff(
    config: RetryConfig | None = None,
    max_retries: int | None = None,
    on_retry: Callable[[int, Exception], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator for retrying a function with exponential backoff.

    Only exceptions listed in config.retryable_exceptions are retried;
    anything else propagates immediately.

    Args:
        config: RetryConfig to use (copied, never mutated)
        max_retries: Override for config.max_retries
        on_retry: Called with (attempt, error) before each retry
        sleep: Sleep function (injectable for tests)

    Returns:
        Decorator

    Usage:
        @retry_with_backoff(config=OCR_RETRY_CONFIG)
        def call_vision_api():
            ...
    """
    config = dataclasses.replace(config) if config else RetryConfig()
    if max_retries is not None:
        config.max_retries = max_retries

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempts = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except config.retryable_exceptions as e:
                    attempts += 1
                    if attempts > config.max_retries:
                        logger.error(
                            f"All {config.max_retries} retries exhausted for {func.__name__}: {e}"
                        )
                        raise RetryError(
                            f"Failed after {attempts} attempts: {e}",
                            attempts=attempts,
                            last_error=e,
                        ) from e

                    delay = config.calculate_delay(attempts - 1)
                    logger.warning(
                        f"Retry {attempts}/{config.max_retries} for {func.__name__} "
                        f"after {delay:.2f}s: {e}"
                    )
                    if on_retry:
                        on_retry(attempts, e)
                    sleep(delay)

        return wrapper

    return decorator

"""
Retry helpers shared by the scraper and the query path.
Fixed delay between attempts, no jitter: each request is a single cooperative task.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _always(error: Exception) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, how long to wait in between, and what is worth retrying."""
    max_attempts: int = 3
    delay: float = 1.0
    is_retryable: Callable[[Exception], bool] = _always


class RetryError(Exception):
    """Raised once every attempt has failed."""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    description: str = "operation",
    log: Optional[logging.Logger] = None,
) -> T:
    """
    Await operation() until it succeeds or the policy runs out.

    Errors the policy does not consider retryable propagate untouched.
    Once attempts are exhausted a RetryError wrapping the last failure is raised.
    """
    log = log or logger
    attempts = max(1, policy.max_attempts)
    last_error = None

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not policy.is_retryable(e):
                raise
            last_error = e
            log.warning(f"{description} attempt {attempt}/{attempts} failed: {str(e)}")
            if attempt < attempts:
                await asyncio.sleep(policy.delay)

    log.error(f"{description} failed after {attempts} attempts")
    raise RetryError(attempts, last_error)

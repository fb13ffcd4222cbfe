"""
Retry helper for remote calls.

Wraps any zero-argument callable. Which errors are retryable, how many
retries are allowed, and how long to wait before each retry are all
parameters, so the backoff curve is configuration rather than call-site code.
"""

import time
from dataclasses import dataclass
from typing import Callable, TypeVar
import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def linear_backoff(base_delay_seconds: float) -> Callable[[int], float]:
    """Delay for retry N is N x base_delay_seconds."""
    def delay(attempt: int) -> float:
        return base_delay_seconds * attempt
    return delay


@dataclass(frozen=True)
class RetryPolicy:
    """
    When and how long to retry.

    Attributes:
        is_retryable: Predicate on the raised exception
        max_retries: Retries after the first attempt (0 disables retrying)
        delay_for: Seconds to wait before retry N (N starts at 1)
    """
    is_retryable: Callable[[BaseException], bool]
    max_retries: int
    delay_for: Callable[[int], float]


def with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    label: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run operation, retrying per policy.

    Args:
        operation: Callable performing one attempt
        policy: Retry policy
        label: Human-readable description for logs
        sleep: Sleep function (injectable for tests)

    Returns:
        The operation's result

    Raises:
        The last exception when it is not retryable or retries are exhausted
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except Exception as e:
            if not policy.is_retryable(e) or attempt > policy.max_retries:
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                "remote_call_retrying",
                label=label,
                attempt=attempt,
                max_retries=policy.max_retries,
                delay_seconds=delay,
                error=str(e),
            )
            sleep(delay)

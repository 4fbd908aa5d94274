"""Fixed-interval poll primitive shared by removal recipes and the ARM client."""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from ..models.retry_policy import RetryPolicy
from .clock import SystemClock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PollTimeoutError(Exception):
    """A poll loop used its whole retry budget without reaching the target state.

    Attributes:
        description: What was being waited for
        attempts: Number of attempts made
        elapsed_seconds: Time spent sleeping between attempts
    """

    def __init__(self, description: str, attempts: int, elapsed_seconds: float) -> None:
        self.description = description
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
        super().__init__(f"Timed out waiting for {description} after {attempts} attempts ({elapsed_seconds:.0f}s)")


def poll_until(
    check: Callable[[], Optional[T]],
    policy: RetryPolicy,
    clock: Optional[SystemClock] = None,
    description: str = "condition",
) -> T:
    """Call ``check`` until it returns a truthy value.

    ``check`` signals "still waiting" by returning a falsy value and a fatal
    condition by raising; exceptions propagate immediately.

    Args:
        check: Zero-argument callable probing the remote state
        policy: Interval and attempt ceiling
        clock: Clock used for sleeping (default: system clock)
        description: Human-readable target state for logs and errors

    Returns:
        First truthy value returned by ``check``

    Raises:
        PollTimeoutError: If every attempt returned a falsy value
    """
    clock = clock or SystemClock()
    slept = 0.0

    for attempt in range(1, policy.max_attempts + 1):
        result = check()
        if result:
            logger.debug(f"{description}: reached after {attempt} attempt(s)")
            return result

        if attempt < policy.max_attempts:
            logger.debug(
                f"Waiting for {description} "
                f"(attempt {attempt}/{policy.max_attempts}, next check in {policy.interval_seconds}s)"
            )
            clock.sleep(policy.interval_seconds)
            slept += policy.interval_seconds

    raise PollTimeoutError(description, policy.max_attempts, slept)

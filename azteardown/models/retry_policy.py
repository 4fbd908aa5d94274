"""Retry policy model governing provider poll loops."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-interval retry policy.

    A fresh policy value is handed to every poll operation; nothing about a
    poll's progress is stored on the policy itself.

    Attributes:
        interval_seconds: Seconds to wait between attempts
        max_attempts: Hard ceiling on the number of attempts
    """

    interval_seconds: float
    max_attempts: int

    def __post_init__(self) -> None:
        """Validate policy values."""
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds cannot be negative")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @property
    def total_seconds(self) -> float:
        """Upper bound of time spent sleeping when every attempt is used."""
        return self.interval_seconds * (self.max_attempts - 1)


# Provider state transitions (replication, image template and workspace deletion)
PROVIDER_STATE_POLICY = RetryPolicy(interval_seconds=15, max_attempts=240)

# Waiting for removed management locks to disappear
LOCK_REMOVAL_POLICY = RetryPolicy(interval_seconds=10, max_attempts=30)

# Long-running ARM operations (Azure-AsyncOperation / Location polling)
OPERATION_POLICY = RetryPolicy(interval_seconds=10, max_attempts=360)

# Batch removal cycles retrying failed resources
REMOVAL_CYCLE_POLICY = RetryPolicy(interval_seconds=15, max_attempts=3)

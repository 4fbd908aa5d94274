"""Teardown operation model: one preview or execution over a list of targets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class OperationMode(Enum):
    """Whether a teardown mutates anything."""

    DRY_RUN = "dry-run"
    EXECUTE = "execute"


class OperationStatus(Enum):
    """Final status of a teardown."""

    PLANNED = "planned"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"

    @classmethod
    def from_counts(cls, succeeded: int, failed: int) -> OperationStatus:
        """Status of an executed teardown from its outcome counts.

        Skipped targets count as neither: a run with only skips completes.
        """
        if failed == 0:
            return cls.COMPLETED
        return cls.PARTIAL if succeeded > 0 else cls.FAILED


@dataclass
class DeletionOperation:
    """A teardown run over removal targets.

    Preview runs stay PLANNED. Executed runs end COMPLETED, PARTIAL or FAILED
    once every retry cycle is spent (see ``OperationStatus.from_counts``).

    Attributes:
        operation_id: Unique identifier for the operation
        source: Where the targets came from (targets file, "deployment:<name>", "single")
        timestamp: When the operation was initiated (UTC)
        mode: dry-run or execute
        status: Final status
        total_resources: Number of distinct targets
        subscription_id: Azure subscription the targets belong to (optional)
        succeeded_count: Targets removed or confirmed gone
        failed_count: Targets still failing after the last cycle
        skipped_count: Targets skipped by their recipe or a declined confirmation
        tenant_id: Tenant used for credentials (optional)
        started_at: When execution started (execute mode only)
        completed_at: When execution completed (execute mode only)
        duration_seconds: Wall time including the sleeps between cycles
    """

    operation_id: str
    source: str
    timestamp: datetime
    mode: OperationMode
    status: OperationStatus
    total_resources: int
    subscription_id: Optional[str] = None
    succeeded_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    tenant_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None

    def validate(self) -> bool:
        """Validate operation invariants.

        Validation rules:
            - succeeded_count + failed_count + skipped_count == total_resources
              (execute mode; previews leave planned targets uncounted)
            - completed_at must not precede started_at
            - dry-run mode must have planned status, execute mode must not

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        counted = self.succeeded_count + self.failed_count + self.skipped_count
        if self.mode == OperationMode.EXECUTE and counted != self.total_resources:
            raise ValueError("Resource counts don't match total")
        if counted > self.total_resources:
            raise ValueError("Resource counts exceed total")

        if self.completed_at and self.started_at and self.completed_at < self.started_at:
            raise ValueError("Completion time before start time")

        if self.mode == OperationMode.DRY_RUN and self.status != OperationStatus.PLANNED:
            raise ValueError("Dry-run mode must have planned status")
        if self.mode == OperationMode.EXECUTE and self.status == OperationStatus.PLANNED:
            raise ValueError("Executed operation cannot stay planned")

        return True

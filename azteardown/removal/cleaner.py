"""Batch teardown runner.

Removes a list of targets with preview and execution modes, retrying failed
targets in later cycles and writing an audit log of every execution.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from ..models.deletion_operation import DeletionOperation, OperationMode, OperationStatus
from ..models.deletion_record import DeletionRecord, DeletionStatus
from ..models.removal_target import RemovalTarget
from ..models.retry_policy import REMOVAL_CYCLE_POLICY, RetryPolicy
from .audit import AuditStorage
from .context import ActionStatus
from .errors import RemovalError
from .remover import RemovalReport, ResourceRemover

logger = logging.getLogger(__name__)

# Type prefixes removed first, in this order; everything else follows in input order.
# Grants and guards go first, dependents before the resources they depend on.
DEFAULT_REMOVAL_ORDER = [
    "Microsoft.Authorization/locks",
    "Microsoft.Authorization/roleEligibilityScheduleRequests",
    "Microsoft.Authorization/roleAssignmentScheduleRequests",
    "Microsoft.Authorization/roleAssignments",
    "Microsoft.Insights/diagnosticSettings",
    "Microsoft.Compute/virtualMachines",
    "Microsoft.Compute/virtualMachineScaleSets",
    "Microsoft.Compute/disks",
    "Microsoft.Compute/diskEncryptionSets",
    "Microsoft.RecoveryServices/vaults",
    "Microsoft.DataProtection/backupVaults",
    "Microsoft.Network/privateEndpoints",
    "Microsoft.Network/networkInterfaces",
]


@dataclass
class TeardownResult:
    """Operation summary together with one record per target.

    Attributes:
        operation: Operation metadata and counts
        records: Per-target removal records, in removal order
    """

    operation: DeletionOperation
    records: List[DeletionRecord] = field(default_factory=list)


class TeardownRunner:
    """Batch teardown orchestrator.

    Coordinates removal of many targets with ordering, retry cycles and audit
    logging. A failure of one target never aborts the batch; failed targets
    are retried in the next cycle because their dependents may have been
    removed in the meantime.

    Attributes:
        remover: Single-resource orchestrator
        audit_storage: Audit storage for teardown logs
        removal_order: Type prefixes removed first
        cycle_policy: Number of removal cycles and the pause between them
    """

    def __init__(
        self,
        remover: ResourceRemover,
        audit_storage: AuditStorage,
        removal_order: Optional[Sequence[str]] = None,
        cycle_policy: RetryPolicy = REMOVAL_CYCLE_POLICY,
    ) -> None:
        """Initialize teardown runner.

        Args:
            remover: Resource remover
            audit_storage: Audit storage for logging
            removal_order: Type prefixes removed first (default: DEFAULT_REMOVAL_ORDER)
            cycle_policy: Retry cycles for failed targets
        """
        self.remover = remover
        self.audit_storage = audit_storage
        self.removal_order = list(removal_order) if removal_order is not None else list(DEFAULT_REMOVAL_ORDER)
        self.cycle_policy = cycle_policy

    @property
    def clock(self):
        """Clock shared with the remover."""
        return self.remover.clock

    def order_targets(self, targets: Iterable[RemovalTarget]) -> List[RemovalTarget]:
        """Sort targets by removal order (stable for targets of equal rank), dropping duplicates.

        Args:
            targets: Targets in input order

        Returns:
            Targets in the order they will be removed
        """
        prefixes = [p.lower() for p in self.removal_order]

        def rank(target: RemovalTarget) -> int:
            resource_type = (target.resource_type or "").lower()
            for index, prefix in enumerate(prefixes):
                if resource_type == prefix or resource_type.startswith(prefix + "/"):
                    return index
            return len(prefixes)

        unique = {}
        for target in targets:
            unique.setdefault(target.resource_id.lower(), target)

        return sorted(unique.values(), key=rank)

    def preview(
        self,
        targets: Sequence[RemovalTarget],
        source: str,
        subscription_id: Optional[str] = None,
    ) -> TeardownResult:
        """Preview the removal of every target (dry-run mode).

        Reads still happen so the planned actions reflect the live state;
        nothing is mutated and no audit log is written.

        Args:
            targets: Targets to remove
            source: Where the targets came from
            subscription_id: Subscription the targets belong to (optional)

        Returns:
            Result with a planned operation and one record per target
        """
        operation_id = f"op_{uuid.uuid4()}"
        records = []

        for target in self.order_targets(targets):
            try:
                report = self.remover.remove(target.resource_id, target.resource_type, dry_run=True)
                records.append(self._record_from_report(operation_id, report, DeletionStatus.PLANNED))
            except RemovalError as e:
                records.append(self._failed_record(operation_id, target, e))

        operation = DeletionOperation(
            operation_id=operation_id,
            source=source,
            timestamp=self.clock.now(),
            subscription_id=subscription_id,
            mode=OperationMode.DRY_RUN,
            status=OperationStatus.PLANNED,
            total_resources=len(records),
            succeeded_count=0,
            failed_count=_count(records, DeletionStatus.FAILED),
            skipped_count=_count(records, DeletionStatus.SKIPPED),
        )

        return TeardownResult(operation, records)

    def execute(
        self,
        targets: Sequence[RemovalTarget],
        source: str,
        subscription_id: Optional[str] = None,
        confirmed: bool = False,
        force: bool = False,
        confirm: Optional[Callable[[str], bool]] = None,
        tenant_id: Optional[str] = None,
    ) -> TeardownResult:
        """Remove every target (execution mode).

        Args:
            targets: Targets to remove
            source: Where the targets came from
            subscription_id: Subscription the targets belong to (optional)
            confirmed: Must be True to proceed with removal
            force: Do not ask before each mutation
            confirm: Per-mutation confirmation callback when not forced
            tenant_id: Tenant recorded in the audit log (optional)

        Returns:
            Result with the final operation status and one record per target

        Raises:
            ValueError: If not confirmed
        """
        if not confirmed:
            raise ValueError("Removal requires explicit confirmation. Set confirmed=True or use --yes flag.")

        operation_id = f"op_{uuid.uuid4()}"
        started_at = self.clock.now()
        ordered = self.order_targets(targets)

        records = {}
        pending = ordered
        for cycle in range(1, self.cycle_policy.max_attempts + 1):
            if cycle > 1:
                logger.info(
                    f"Retrying {len(pending)} failed removal(s) in {self.cycle_policy.interval_seconds}s "
                    f"(cycle {cycle}/{self.cycle_policy.max_attempts})"
                )
                self.clock.sleep(self.cycle_policy.interval_seconds)

            failed = []
            for target in pending:
                record = self._remove_one(operation_id, target, force, confirm)
                record.attempts = cycle
                records[target.resource_id] = record
                if record.status == DeletionStatus.FAILED:
                    failed.append(target)

            pending = failed
            if not pending:
                break

        ordered_records = [records[t.resource_id] for t in ordered]
        succeeded_count = _count(ordered_records, DeletionStatus.SUCCEEDED)
        failed_count = _count(ordered_records, DeletionStatus.FAILED)

        completed_at = self.clock.now()
        operation = DeletionOperation(
            operation_id=operation_id,
            source=source,
            timestamp=started_at,
            subscription_id=subscription_id,
            mode=OperationMode.EXECUTE,
            status=OperationStatus.from_counts(succeeded_count, failed_count),
            total_resources=len(ordered_records),
            succeeded_count=succeeded_count,
            failed_count=failed_count,
            skipped_count=_count(ordered_records, DeletionStatus.SKIPPED),
            tenant_id=tenant_id,
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=(completed_at - started_at).total_seconds(),
        )
        operation.validate()

        self.audit_storage.log_operation(operation, ordered_records)

        return TeardownResult(operation, ordered_records)

    def _remove_one(
        self,
        operation_id: str,
        target: RemovalTarget,
        force: bool,
        confirm: Optional[Callable[[str], bool]],
    ) -> DeletionRecord:
        """Remove a single target and turn the outcome into a record."""
        try:
            report = self.remover.remove(target.resource_id, target.resource_type, force=force, confirm=confirm)
        except RemovalError as e:
            logger.warning(str(e))
            return self._failed_record(operation_id, target, e)

        declined = [a for a in report.actions if a.status == ActionStatus.DECLINED]
        if declined and not report.skipped:
            record = self._record_from_report(operation_id, report, DeletionStatus.SKIPPED)
            record.skip_reason = f"Declined: {declined[0].action} {declined[0].target}"
            return record

        return self._record_from_report(operation_id, report, DeletionStatus.SUCCEEDED)

    def _record_from_report(self, operation_id: str, report: RemovalReport, status: DeletionStatus) -> DeletionRecord:
        if report.skipped:
            status = DeletionStatus.SKIPPED

        return DeletionRecord(
            record_id=f"rec_{uuid.uuid4()}",
            operation_id=operation_id,
            resource_id=report.resource_id,
            resource_type=report.resource_type,
            timestamp=self.clock.now(),
            status=status,
            recipe=report.recipe,
            skip_reason=report.skip_reason,
            actions=[str(a) for a in report.actions],
        )

    def _failed_record(self, operation_id: str, target: RemovalTarget, error: RemovalError) -> DeletionRecord:
        return DeletionRecord(
            record_id=f"rec_{uuid.uuid4()}",
            operation_id=operation_id,
            resource_id=target.resource_id,
            resource_type=target.resource_type or "",
            timestamp=self.clock.now(),
            status=DeletionStatus.FAILED,
            recipe=self.remover.registry.recipe_for(target.resource_type).name,
            error_code=error.error_code,
            error_message=error.error_message,
            failed_step=error.step,
        )


def _count(records: Iterable[DeletionRecord], status: DeletionStatus) -> int:
    return sum(1 for r in records if r.status == status)

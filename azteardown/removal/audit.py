"""Audit storage for teardown operations.

Stores and retrieves audit logs in YAML format for compliance and troubleshooting.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import yaml

from ..models.deletion_operation import DeletionOperation
from ..models.deletion_record import DeletionRecord


class AuditStorage:
    """Audit log storage and retrieval.

    Stores teardown operation audit logs as YAML files organized by year/month.
    Supports querying operations by date range and retrieving detailed operation logs.

    Storage structure:
        ~/.azteardown/audit-logs/
            2026/
                10/
                    operation-op_123.yaml
                    operation-op_456.yaml

    Attributes:
        storage_dir: Base directory for audit logs
    """

    def __init__(self, storage_dir: Optional[str] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for audit logs (default: ~/.azteardown/audit-logs)
        """
        if storage_dir is None:
            storage_dir = str(Path.home() / ".azteardown" / "audit-logs")

        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def log_operation(self, operation: DeletionOperation, records: List[DeletionRecord]) -> Path:
        """Log teardown operation to audit storage.

        Overwrites an existing log with the same operation ID.

        Args:
            operation: Teardown operation to log
            records: Removal records of this operation

        Returns:
            Path of the written audit file
        """
        timestamp = _utc(operation.timestamp)
        year_month_dir = self.storage_dir / str(timestamp.year) / f"{timestamp.month:02d}"
        year_month_dir.mkdir(parents=True, exist_ok=True)

        audit_data = {
            "metadata": {
                "version": "1.0",
                "log_type": "resource_teardown",
                "created_at": _iso(datetime.now(timezone.utc)),
            },
            "operation": {
                "operation_id": operation.operation_id,
                "source": operation.source,
                "timestamp": _iso(operation.timestamp),
                "tenant_id": operation.tenant_id,
                "subscription_id": operation.subscription_id,
                "mode": operation.mode.value,
                "status": operation.status.value,
                "total_resources": operation.total_resources,
                "succeeded_count": operation.succeeded_count,
                "failed_count": operation.failed_count,
                "skipped_count": operation.skipped_count,
                "started_at": _iso(operation.started_at),
                "completed_at": _iso(operation.completed_at),
                "duration_seconds": operation.duration_seconds,
            },
            "records": [
                {
                    "record_id": record.record_id,
                    "operation_id": record.operation_id,
                    "resource_id": record.resource_id,
                    "resource_type": record.resource_type,
                    "timestamp": _iso(record.timestamp),
                    "status": record.status.value,
                    "recipe": record.recipe,
                    "attempts": record.attempts,
                    "error_code": record.error_code,
                    "error_message": record.error_message,
                    "failed_step": record.failed_step,
                    "skip_reason": record.skip_reason,
                    "actions": list(record.actions),
                }
                for record in records
            ],
        }

        audit_file = year_month_dir / f"operation-{operation.operation_id}.yaml"
        with open(audit_file, "w") as f:
            yaml.safe_dump(audit_data, f, default_flow_style=False, sort_keys=False)

        return audit_file

    def get_operation(self, operation_id: str) -> Optional[dict]:
        """Retrieve operation audit log by ID.

        Args:
            operation_id: Operation ID to retrieve

        Returns:
            Audit log dictionary if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/operation-{operation_id}.yaml"):
            with open(audit_file, "r") as f:
                return yaml.safe_load(f)

        return None

    def query_operations(self, since: Optional[datetime] = None, until: Optional[datetime] = None) -> List[dict]:
        """Query operations within date range.

        Args:
            since: Start date (inclusive), None for all
            until: End date (inclusive), None for all

        Returns:
            Audit logs matching the range, oldest first
        """
        since = _utc(since) if since else None
        until = _utc(until) if until else None
        results = []

        for year_dir in sorted(self.storage_dir.glob("*")):
            if not year_dir.is_dir():
                continue

            for month_dir in sorted(year_dir.glob("*")):
                if not month_dir.is_dir():
                    continue

                for audit_file in sorted(month_dir.glob("operation-*.yaml")):
                    with open(audit_file, "r") as f:
                        audit_data = yaml.safe_load(f)

                    timestamp = _utc(datetime.fromisoformat(audit_data["operation"]["timestamp"].replace("Z", "+00:00")))

                    if since and timestamp < since:
                        continue
                    if until and timestamp > until:
                        continue

                    results.append(audit_data)

        results.sort(key=lambda data: data["operation"]["timestamp"])
        return results


def _utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return _utc(value).isoformat().replace("+00:00", "Z")

"""Deletion record model.

Individual resource removal attempt with result and metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class DeletionStatus(Enum):
    """Individual resource removal status."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    PLANNED = "planned"


@dataclass
class DeletionRecord:
    """Deletion record entity.

    Represents the outcome of removing a single resource. Each record belongs to
    a DeletionOperation.

    Validation rules:
        - status=succeeded: no error_code or skip_reason
        - status=failed: requires error_code
        - status=skipped: requires skip_reason
        - resource_id must be an ARM ID (starts with "/")
        - attempts must be >= 1

    Attributes:
        record_id: Unique identifier for this record
        operation_id: Parent operation identifier
        resource_id: Full ARM resource ID
        resource_type: Resource type that selected the recipe
        timestamp: When removal was last attempted (UTC)
        status: Removal outcome
        recipe: Name of the recipe that handled the resource (optional)
        error_code: Provider error code if failed (optional)
        error_message: Provider error message if failed (optional)
        failed_step: Recipe step that failed (optional)
        skip_reason: Why the recipe skipped the resource (optional)
        attempts: Number of removal cycles used (default: 1)
        actions: Human-readable actions performed or planned (optional)
    """

    record_id: str
    operation_id: str
    resource_id: str
    resource_type: str
    timestamp: datetime
    status: DeletionStatus
    recipe: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    failed_step: Optional[str] = None
    skip_reason: Optional[str] = None
    attempts: int = 1
    actions: List[str] = field(default_factory=list)

    def validate(self) -> bool:
        """Validate record invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.status == DeletionStatus.FAILED:
            if not self.error_code:
                raise ValueError("Failed status requires error_code")
        elif self.status == DeletionStatus.SKIPPED:
            if not self.skip_reason:
                raise ValueError("Skipped status requires skip_reason")
        elif self.status == DeletionStatus.SUCCEEDED:
            if self.error_code or self.skip_reason:
                raise ValueError("Succeeded status cannot have error or skip reason")

        if not self.resource_id.startswith("/"):
            raise ValueError("Invalid resource ID format")

        if self.attempts < 1:
            raise ValueError("Attempts must be at least 1")

        return True

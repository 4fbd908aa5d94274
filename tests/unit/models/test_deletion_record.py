"""Tests for DeletionRecord model.

Test coverage for individual removal record entity with status-specific validation.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from azteardown.models.deletion_record import DeletionRecord, DeletionStatus

VAULT_ID = "/subscriptions/sub-1/resourceGroups/rg-1/providers/Microsoft.KeyVault/vaults/kv-01"


def make_record(**overrides) -> DeletionRecord:
    values = dict(
        record_id="rec_001",
        operation_id="op_123",
        resource_id=VAULT_ID,
        resource_type="Microsoft.KeyVault/vaults",
        timestamp=datetime(2026, 3, 2, 12, 0, 0),
        status=DeletionStatus.SUCCEEDED,
    )
    values.update(overrides)
    return DeletionRecord(**values)


class TestDeletionRecord:
    """Test suite for DeletionRecord model."""

    def test_create_succeeded_record(self) -> None:
        """Test creating successful removal record."""
        record = make_record(recipe="KeyVaultRecipe", actions=["[performed] Remove resource: kv-01"])

        assert record.status == DeletionStatus.SUCCEEDED
        assert record.recipe == "KeyVaultRecipe"
        assert record.error_code is None
        assert record.skip_reason is None
        assert record.attempts == 1
        assert record.actions == ["[performed] Remove resource: kv-01"]
        assert record.validate() is True

    def test_create_failed_record(self) -> None:
        """Test creating failed record with provider error details."""
        record = make_record(
            status=DeletionStatus.FAILED,
            error_code="ScopeLocked",
            error_message="The scope cannot perform delete operation because it is locked",
            failed_step="Remove resource",
        )

        assert record.error_code == "ScopeLocked"
        assert record.failed_step == "Remove resource"
        assert record.validate() is True

    def test_failed_record_requires_error_code(self) -> None:
        """Test failed status without error code fails validation."""
        record = make_record(status=DeletionStatus.FAILED)

        with pytest.raises(ValueError, match="Failed status requires error_code"):
            record.validate()

    def test_skipped_record_requires_reason(self) -> None:
        """Test skipped status without skip reason fails validation."""
        record = make_record(status=DeletionStatus.SKIPPED)

        with pytest.raises(ValueError, match="Skipped status requires skip_reason"):
            record.validate()

    def test_skipped_record_with_reason(self) -> None:
        """Test skipped status with reason passes validation."""
        record = make_record(status=DeletionStatus.SKIPPED, skip_reason="Removed together with the key vault")

        assert record.validate() is True

    def test_succeeded_record_cannot_have_error(self) -> None:
        """Test succeeded status with an error code fails validation."""
        record = make_record(error_code="Conflict")

        with pytest.raises(ValueError, match="Succeeded status cannot have error"):
            record.validate()

    def test_planned_record_needs_no_details(self) -> None:
        """Test planned (dry-run) records validate without error or reason."""
        record = make_record(status=DeletionStatus.PLANNED)

        assert record.validate() is True

    def test_resource_id_must_be_arm_id(self) -> None:
        """Test resource ID without leading slash fails validation."""
        record = make_record(resource_id="kv-01")

        with pytest.raises(ValueError, match="Invalid resource ID format"):
            record.validate()

    def test_attempts_must_be_positive(self) -> None:
        """Test zero attempts fails validation."""
        record = make_record(attempts=0)

        with pytest.raises(ValueError, match="Attempts must be at least 1"):
            record.validate()

    def test_status_values(self) -> None:
        """Test DeletionStatus enum values."""
        assert DeletionStatus.SUCCEEDED.value == "succeeded"
        assert DeletionStatus.FAILED.value == "failed"
        assert DeletionStatus.SKIPPED.value == "skipped"
        assert DeletionStatus.PLANNED.value == "planned"
        assert DeletionStatus("skipped") == DeletionStatus.SKIPPED

"""Tests for TeardownRunner ordering, preview, retry cycles and audit logging."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from azteardown.azure.errors import ProviderRequestError
from azteardown.models.deletion_operation import OperationMode, OperationStatus
from azteardown.models.deletion_record import DeletionStatus
from azteardown.models.removal_target import RemovalTarget
from azteardown.removal.audit import AuditStorage
from azteardown.removal.cleaner import TeardownRunner
from azteardown.removal.remover import ResourceRemover
from tests.fixtures.azure import SUBSCRIPTION_ID, FakeClock, create_mock_service, resource_id

STORAGE_ID = resource_id("Microsoft.Storage/storageAccounts", "stteardown01")
NIC_ID = resource_id("Microsoft.Network/networkInterfaces", "nic-01")
VM_ID = resource_id("Microsoft.Compute/virtualMachines", "vm-01")
LOCK_ID = f"{STORAGE_ID}/providers/Microsoft.Authorization/locks/keep"
KEY_ID = resource_id("Microsoft.KeyVault/vaults", "kv-01/keys/key-01")


class TestTeardownRunner:
    """Test suite for TeardownRunner."""

    @pytest.fixture
    def service(self) -> MagicMock:
        return create_mock_service()

    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def audit_storage(self, tmp_path: Path) -> AuditStorage:
        return AuditStorage(storage_dir=str(tmp_path / "audit"))

    @pytest.fixture
    def runner(self, service: MagicMock, clock: FakeClock, audit_storage: AuditStorage) -> TeardownRunner:
        return TeardownRunner(ResourceRemover(service, clock=clock), audit_storage)

    def test_order_targets(self, runner: TeardownRunner) -> None:
        """Test removal order ranks types and keeps input order otherwise."""
        targets = [
            RemovalTarget(STORAGE_ID),
            RemovalTarget(NIC_ID),
            RemovalTarget(VM_ID),
            RemovalTarget(LOCK_ID),
            RemovalTarget(STORAGE_ID.upper().replace("/SUBSCRIPTIONS", "/subscriptions")),
        ]

        ordered = runner.order_targets(targets)

        assert [t.resource_id for t in ordered] == [LOCK_ID, VM_ID, NIC_ID, STORAGE_ID]

    def test_custom_removal_order(self, service: MagicMock, clock: FakeClock, audit_storage: AuditStorage) -> None:
        """Test a configured order replaces the default one."""
        runner = TeardownRunner(
            ResourceRemover(service, clock=clock), audit_storage, removal_order=["Microsoft.Storage/storageAccounts"]
        )

        ordered = runner.order_targets([RemovalTarget(VM_ID), RemovalTarget(STORAGE_ID)])

        assert [t.resource_id for t in ordered] == [STORAGE_ID, VM_ID]

    def test_preview_plans_without_mutating(
        self, runner: TeardownRunner, service: MagicMock, audit_storage: AuditStorage
    ) -> None:
        """Test preview reports planned records and writes no audit log."""
        result = runner.preview([RemovalTarget(STORAGE_ID), RemovalTarget(KEY_ID)], source="targets.yaml")

        assert result.operation.mode == OperationMode.DRY_RUN
        assert result.operation.status == OperationStatus.PLANNED
        assert result.operation.total_resources == 2
        assert result.operation.skipped_count == 1
        assert [r.status for r in result.records] == [DeletionStatus.PLANNED, DeletionStatus.SKIPPED]
        assert result.records[0].actions == [f"[planned] Remove resource: {STORAGE_ID}"]
        service.delete_by_id.assert_not_called()
        assert audit_storage.query_operations() == []

    def test_execute_requires_confirmation(self, runner: TeardownRunner) -> None:
        """Test execution refuses to run unconfirmed."""
        with pytest.raises(ValueError, match="explicit confirmation"):
            runner.execute([RemovalTarget(STORAGE_ID)], source="single")

    def test_execute_success(
        self, runner: TeardownRunner, service: MagicMock, audit_storage: AuditStorage, clock: FakeClock
    ) -> None:
        """Test every target removed once, logged and completed."""
        result = runner.execute(
            [RemovalTarget(STORAGE_ID), RemovalTarget(KEY_ID)],
            source="targets.yaml",
            subscription_id=SUBSCRIPTION_ID,
            confirmed=True,
            force=True,
        )

        assert result.operation.status == OperationStatus.COMPLETED
        assert result.operation.succeeded_count == 1
        assert result.operation.skipped_count == 1
        assert clock.sleeps == []
        service.delete_by_id.assert_called_once_with(STORAGE_ID, force=True)

        logged = audit_storage.get_operation(result.operation.operation_id)
        assert logged["operation"]["status"] == "completed"
        assert logged["operation"]["subscription_id"] == SUBSCRIPTION_ID
        assert [r["status"] for r in logged["records"]] == ["succeeded", "skipped"]

    def test_failed_target_retried_next_cycle(
        self, runner: TeardownRunner, service: MagicMock, clock: FakeClock
    ) -> None:
        """Test a failure is retried after the cycle pause and succeeds later."""
        calls = {"count": 0}

        def delete(resource_id, force=True):
            if resource_id == NIC_ID:
                calls["count"] += 1
                if calls["count"] == 1:
                    raise ProviderRequestError(400, "NicInUse", "still attached")
            return True

        service.delete_by_id.side_effect = delete

        result = runner.execute([RemovalTarget(NIC_ID), RemovalTarget(STORAGE_ID)], source="list", confirmed=True, force=True)

        assert result.operation.status == OperationStatus.COMPLETED
        nic_record = result.records[0]
        assert nic_record.status == DeletionStatus.SUCCEEDED
        assert nic_record.attempts == 2
        assert result.records[1].attempts == 1
        assert clock.sleeps == [15]
        assert service.delete_by_id.call_count == 3

    def test_persistent_failure(self, runner: TeardownRunner, service: MagicMock, clock: FakeClock) -> None:
        """Test targets failing every cycle end as FAILED with the provider error."""
        service.delete_by_id.side_effect = ProviderRequestError(409, "Conflict", "busy")

        result = runner.execute([RemovalTarget(STORAGE_ID)], source="single", confirmed=True, force=True)

        record = result.records[0]
        assert result.operation.status == OperationStatus.FAILED
        assert record.status == DeletionStatus.FAILED
        assert record.attempts == 3
        assert record.error_code == "Conflict"
        assert record.error_message == "busy"
        assert record.failed_step == f"Remove resource {STORAGE_ID}"
        assert record.recipe == "DefaultRecipe"
        assert clock.sleeps == [15, 15]

    def test_partial_failure(self, runner: TeardownRunner, service: MagicMock) -> None:
        """Test mixed outcomes give a partial operation."""

        def delete(resource_id, force=True):
            if resource_id == VM_ID:
                raise ProviderRequestError(409, "Conflict", "busy")
            return True

        service.delete_by_id.side_effect = delete

        result = runner.execute([RemovalTarget(VM_ID), RemovalTarget(STORAGE_ID)], source="list", confirmed=True, force=True)

        assert result.operation.status == OperationStatus.PARTIAL
        assert result.operation.failed_count == 1
        assert result.operation.succeeded_count == 1

    def test_declined_step_recorded_as_skipped(self, runner: TeardownRunner, service: MagicMock) -> None:
        """Test declining a confirmation skips the target."""
        result = runner.execute(
            [RemovalTarget(STORAGE_ID)], source="single", confirmed=True, confirm=lambda prompt: False
        )

        record = result.records[0]
        assert record.status == DeletionStatus.SKIPPED
        assert record.skip_reason == f"Declined: Remove resource {STORAGE_ID}"
        service.delete_by_id.assert_not_called()

    def test_transport_error_does_not_abort_batch(
        self, runner: TeardownRunner, service: MagicMock, audit_storage: AuditStorage
    ) -> None:
        """Test a connection failure fails one target and the batch still completes and is audited."""
        def list_locks(scope):
            if scope == STORAGE_ID:
                raise requests.ConnectionError("connection reset")
            return []

        service.list_locks.side_effect = list_locks

        result = runner.execute(
            [RemovalTarget(STORAGE_ID), RemovalTarget(NIC_ID)], source="list", confirmed=True, force=True
        )

        records = {r.resource_id: r for r in result.records}
        assert records[STORAGE_ID].status == DeletionStatus.FAILED
        assert records[STORAGE_ID].error_code == "ConnectionError"
        assert records[STORAGE_ID].failed_step == "lock removal"
        assert records[NIC_ID].status == DeletionStatus.SUCCEEDED
        assert result.operation.status == OperationStatus.PARTIAL
        assert audit_storage.get_operation(result.operation.operation_id) is not None

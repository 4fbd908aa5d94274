"""Tests for lock, role assignment and PIM schedule request recipes."""

from __future__ import annotations

import uuid
from unittest.mock import MagicMock

import pytest

from azteardown.removal.remover import ResourceRemover
from tests.fixtures.azure import SUBSCRIPTION_ID, FakeClock, create_mock_service, resource_id

SCOPE = f"/subscriptions/{SUBSCRIPTION_ID}"
ORIGINAL_REQUEST = "6f1c2f3e-0000-4000-8000-000000000001"
REQUEST_ID = f"{SCOPE}/providers/Microsoft.Authorization/roleEligibilityScheduleRequests/{ORIGINAL_REQUEST}"
ASSIGNMENT_ID = f"{SCOPE}/resourceGroups/rg/providers/Microsoft.Authorization/roleAssignments/abc"


class TestRoleScheduleRequestRecipe:
    """Test suite for RoleScheduleRequestRecipe."""

    @pytest.fixture
    def service(self) -> MagicMock:
        service = create_mock_service()
        service.get_role_schedule_request.return_value = {
            "properties": {"principalId": "principal-1", "roleDefinitionId": "role-1"}
        }
        return service

    def test_revoked_with_new_admin_remove_request(self, service: MagicMock) -> None:
        """Test revocation creates an AdminRemove request under a fresh name after 5 minutes."""
        clock = FakeClock()

        ResourceRemover(service, clock=clock).remove(REQUEST_ID)

        assert clock.sleeps == [300]
        service.get_role_schedule_request.assert_called_once_with(
            SCOPE, "roleEligibilityScheduleRequests", ORIGINAL_REQUEST
        )
        scope, kind, name, properties = service.create_role_schedule_request.call_args[0]
        assert scope == SCOPE
        assert kind == "roleEligibilityScheduleRequests"
        assert name != ORIGINAL_REQUEST
        assert uuid.UUID(name)
        assert properties["requestType"] == "AdminRemove"
        assert properties["principalId"] == "principal-1"
        assert properties["roleDefinitionId"] == "role-1"
        service.delete_by_id.assert_not_called()
        service.list_locks.assert_not_called()

    def test_missing_request_is_noop(self, service: MagicMock) -> None:
        """Test nothing is created when the original request is gone."""
        service.get_role_schedule_request.return_value = None
        clock = FakeClock()

        ResourceRemover(service, clock=clock).remove(REQUEST_ID)

        service.create_role_schedule_request.assert_not_called()
        assert clock.sleeps == []


class TestRoleAssignmentRecipe:
    """Test suite for RoleAssignmentRecipe."""

    def test_assignment_removed_from_scope(self) -> None:
        """Test the assignment is matched on its scope case-insensitively."""
        service = create_mock_service()
        listed_id = ASSIGNMENT_ID.replace("resourceGroups", "resourcegroups")
        service.list_role_assignments.return_value = [{"id": "/other"}, {"id": listed_id}]

        ResourceRemover(service, clock=FakeClock()).remove(ASSIGNMENT_ID)

        service.list_role_assignments.assert_called_once_with(f"{SCOPE}/resourceGroups/rg")
        service.delete_role_assignment.assert_called_once_with(listed_id)

    def test_absent_assignment_not_deleted(self) -> None:
        """Test an assignment that no longer exists is left alone."""
        service = create_mock_service()
        service.list_role_assignments.return_value = []

        ResourceRemover(service, clock=FakeClock()).remove(ASSIGNMENT_ID)

        service.delete_role_assignment.assert_not_called()


class TestLockRecipe:
    """Test suite for LockRecipe."""

    def test_lock_target_deleted_directly(self) -> None:
        """Test a lock target is removed without clearing locks on it first."""
        service = create_mock_service()
        lock_id = f"{resource_id('Microsoft.KeyVault/vaults', 'kv-01')}/providers/Microsoft.Authorization/locks/keep"

        report = ResourceRemover(service, clock=FakeClock()).remove(lock_id)

        service.delete_lock.assert_called_once_with(lock_id)
        service.list_locks.assert_not_called()
        assert report.recipe == "LockRecipe"

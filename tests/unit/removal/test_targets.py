"""Tests for target files and deployment target collection."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from azteardown.removal.targets import DeploymentTargetCollector, load_targets
from tests.fixtures.azure import SUBSCRIPTION_ID, create_mock_service, resource_id

RG_SCOPE = f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/rg-teardown-test"
VAULT_ID = resource_id("Microsoft.KeyVault/vaults", "kv-01")
NIC_ID = resource_id("Microsoft.Network/networkInterfaces", "nic-01")
NESTED_ID = f"{RG_SCOPE}/providers/Microsoft.Resources/deployments/network"


def operation(resource_id: str, resource_type: str, provisioning: str = "Create") -> dict:
    return {
        "properties": {
            "provisioningOperation": provisioning,
            "targetResource": {"id": resource_id, "resourceType": resource_type},
        }
    }


class TestLoadTargets:
    """Test suite for load_targets."""

    def test_list_of_ids_and_mappings(self, tmp_path: Path) -> None:
        """Test string and mapping entries in a plain list."""
        path = tmp_path / "targets.yaml"
        path.write_text(
            f"- {VAULT_ID}\n"
            f"- resource_id: {NIC_ID}\n"
            f"  resource_type: Microsoft.Network/networkInterfaces\n"
        )

        targets = load_targets(path)

        assert [t.resource_id for t in targets] == [VAULT_ID, NIC_ID]
        assert targets[0].resource_type == "Microsoft.KeyVault/vaults"

    def test_targets_mapping(self, tmp_path: Path) -> None:
        """Test a mapping with a targets key."""
        path = tmp_path / "targets.yaml"
        path.write_text(f"targets:\n  - id: {VAULT_ID}\n    type: Microsoft.KeyVault/vaults\n")

        assert load_targets(path)[0].resource_id == VAULT_ID

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test an empty file yields no targets."""
        path = tmp_path / "targets.yaml"
        path.write_text("")

        assert load_targets(path) == []

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_targets(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test malformed YAML raises ValueError."""
        path = tmp_path / "targets.yaml"
        path.write_text("targets: [unclosed")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_targets(path)

    def test_invalid_entry_names_position(self, tmp_path: Path) -> None:
        """Test a malformed entry reports its position."""
        path = tmp_path / "targets.yaml"
        path.write_text(f"- {VAULT_ID}\n- not-an-id\n")

        with pytest.raises(ValueError, match="Invalid target #2"):
            load_targets(path)


class TestDeploymentTargetCollector:
    """Test suite for DeploymentTargetCollector."""

    @pytest.fixture
    def service(self) -> MagicMock:
        service = create_mock_service()
        service.get_deployment.return_value = {"name": "main"}
        return service

    def test_collects_created_resources_and_nested_deployments(self, service: MagicMock) -> None:
        """Test nested deployments are walked and listed after their resources."""
        operations = {
            "main": [
                operation(NESTED_ID, "Microsoft.Resources/deployments"),
                operation(VAULT_ID, "Microsoft.KeyVault/vaults"),
                operation(VAULT_ID.upper(), "Microsoft.KeyVault/vaults"),
                operation("/subscriptions/x/providers/Y/z/existing", "Y/z", provisioning="Read"),
                {"properties": {"provisioningOperation": "Create"}},
            ],
            "network": [operation(NIC_ID, "Microsoft.Network/networkInterfaces")],
        }
        service.list_deployment_operations.side_effect = lambda scope, name: operations[name]

        targets = DeploymentTargetCollector(service).collect(RG_SCOPE, "main")

        assert [t.resource_id for t in targets] == [NIC_ID, VAULT_ID, NESTED_ID]
        service.list_deployment_operations.assert_any_call(RG_SCOPE, "network")

    def test_missing_deployment(self, service: MagicMock) -> None:
        """Test an unknown deployment raises ValueError."""
        service.get_deployment.return_value = None

        with pytest.raises(ValueError, match="not found"):
            DeploymentTargetCollector(service).collect(RG_SCOPE, "main")

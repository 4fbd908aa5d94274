"""Tests for RecipeRegistry discovery and lookup."""

from __future__ import annotations

from typing import Tuple

import pytest

from azteardown.models.removal_target import RemovalTarget
from azteardown.removal.context import RemovalContext
from azteardown.removal.recipes.base import RemovalRecipe
from azteardown.removal.recipes.compute import DiskEncryptionSetRecipe
from azteardown.removal.recipes.default import DefaultRecipe
from azteardown.removal.recipes.keyvault import KeyVaultChildSkipRecipe, KeyVaultRecipe
from azteardown.removal.registry import RecipeRegistry


class StorageRecipe(RemovalRecipe):
    """Recipe used to test manual registration."""

    @property
    def resource_types(self) -> Tuple[str, ...]:
        return ("Microsoft.Storage/storageAccounts",)

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        pass


class TestRecipeRegistry:
    """Test suite for RecipeRegistry."""

    @pytest.fixture(scope="class")
    def registry(self) -> RecipeRegistry:
        return RecipeRegistry()

    def test_discovers_recipes(self, registry: RecipeRegistry) -> None:
        """Test every recipe module is loaded."""
        types = registry.supported_types()

        assert types["Microsoft.KeyVault/vaults"] == "KeyVaultRecipe"
        assert types["Microsoft.Insights/diagnosticSettings"] == "DiagnosticSettingRecipe"
        assert types["Microsoft.RecoveryServices/vaults"] == "RecoveryServicesVaultRecipe"
        assert types["Microsoft.DataProtection/backupVaults"] == "BackupVaultRecipe"
        assert types["Microsoft.Subscription/aliases"] == "SubscriptionAliasRecipe"
        assert types["Microsoft.MachineLearningServices/workspaces"] == "MachineLearningWorkspaceRecipe"
        assert types["Microsoft.ServiceBus/namespaces/authorizationRules"] == "AuthorizationRuleRecipe"

    def test_abstract_recipes_not_registered(self, registry: RecipeRegistry) -> None:
        """Test abstract base recipes are skipped during discovery."""
        names = set(registry.supported_types().values())

        assert "SoftDeletePurgeRecipe" not in names
        assert "RemovalRecipe" not in names
        assert "DefaultRecipe" not in names

    def test_lookup_is_case_insensitive(self, registry: RecipeRegistry) -> None:
        """Test ARM types match regardless of case."""
        assert isinstance(registry.recipe_for("microsoft.keyvault/VAULTS"), KeyVaultRecipe)
        assert isinstance(registry.recipe_for("Microsoft.Compute/diskEncryptionSets"), DiskEncryptionSetRecipe)

    def test_lookup_is_exact(self, registry: RecipeRegistry) -> None:
        """Test child types do not fall through to the parent recipe."""
        assert isinstance(registry.recipe_for("Microsoft.KeyVault/vaults/keys"), KeyVaultChildSkipRecipe)
        assert isinstance(registry.recipe_for("Microsoft.KeyVault/vaults/secrets"), DefaultRecipe)

    def test_unknown_type_uses_default(self, registry: RecipeRegistry) -> None:
        """Test unregistered and missing types fall back to the default recipe."""
        assert registry.recipe_for("Microsoft.Web/sites") is registry.default
        assert registry.recipe_for(None) is registry.default
        assert registry.recipe_for("") is registry.default

    def test_register_replaces_earlier_recipe(self) -> None:
        """Test manual registration on an empty registry."""
        registry = RecipeRegistry(discover=False)
        assert len(registry) == 0

        recipe = StorageRecipe()
        registry.register(recipe)

        assert len(registry) == 1
        assert registry.recipe_for("microsoft.storage/storageaccounts") is recipe
        assert registry.supported_types() == {"Microsoft.Storage/storageAccounts": "StorageRecipe"}

    def test_lock_removal_opt_outs(self, registry: RecipeRegistry) -> None:
        """Test only types no lock can apply to skip lock removal."""
        opted_out = {
            resource_type
            for resource_type in registry.supported_types()
            if not registry.recipe_for(resource_type).removes_locks
        }

        assert opted_out == {
            "Microsoft.Authorization/locks",
            "Microsoft.Authorization/roleAssignments",
            "Microsoft.Authorization/roleAssignmentScheduleRequests",
            "Microsoft.Authorization/roleEligibilityScheduleRequests",
            "Microsoft.KeyVault/vaults/accessPolicies",
            "Microsoft.KeyVault/vaults/keys",
            "Microsoft.Subscription/aliases",
        }
        assert registry.default.removes_locks

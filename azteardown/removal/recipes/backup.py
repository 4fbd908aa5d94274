"""Removal recipes for backup vaults.

Neither vault kind cascades its delete: the provider rejects the vault delete
while any protected item, backup instance or policy is left, and soft-deleted
children count as left. The pre-steps empty the vault first.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from ...models.removal_target import RemovalTarget
from ..context import RemovalContext
from .base import RemovalRecipe

logger = logging.getLogger(__name__)


class RecoveryServicesVaultRecipe(RemovalRecipe):
    """Recovery Services vaults: disable soft delete, unprotect every backup item, delete the vault."""

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.RecoveryServices/vaults",)

    def pre_steps(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Disable soft delete, then remove protection from every backup item."""
        vault_id = target.resource_id

        config = ctx.service.get_backup_vault_config(vault_id)
        if config is None:
            logger.info(f"Recovery Services vault {vault_id} already deleted")
            return

        soft_delete_state = config.get("properties", {}).get("softDeleteFeatureState")
        if soft_delete_state and soft_delete_state != "Disabled":
            ctx.perform("Disable soft delete", vault_id, ctx.service.set_backup_vault_soft_delete, vault_id, "Disabled")

        items = ctx.service.list_backup_items(vault_id)
        logger.debug(f"Found {len(items)} backup items in {vault_id}")

        for item in items:
            item_name = item.get("name", item.get("id"))
            # Soft-deleted items must be rehydrated before their protection can be removed
            if _is_soft_deleted(item):
                ctx.perform("Undo backup item deletion", item_name, ctx.service.undo_backup_item_deletion, item)
            ctx.perform("Disable protection and delete backup data", item_name, ctx.service.disable_backup_protection, item)

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Delete the emptied vault."""
        ctx.perform("Remove vault", target.resource_id, ctx.service.delete_by_id, target.resource_id, force=True)


class BackupVaultRecipe(RemovalRecipe):
    """Data Protection backup vaults: unlock, undelete and delete every child, then the vault."""

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.DataProtection/backupVaults",)

    def pre_steps(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Empty the vault in the order the provider accepts."""
        vault_id = target.resource_id
        vault = ctx.service.get_data_protection_vault(vault_id)
        if vault is None:
            logger.info(f"Backup vault {vault_id} already deleted")
            return

        security = vault.get("properties", {}).get("securitySettings") or {}

        immutability = security.get("immutabilitySettings") or {}
        if immutability.get("state") and immutability["state"] != "Disabled":
            ctx.perform(
                "Disable immutability",
                vault_id,
                ctx.service.update_data_protection_vault,
                vault_id,
                {"securitySettings": {"immutabilitySettings": {"state": "Disabled"}}},
            )

        soft_delete = security.get("softDeleteSettings") or {}
        if soft_delete.get("state") and soft_delete["state"] != "Off":
            settings = {"state": "Off"}
            if "retentionDurationInDays" in soft_delete:
                settings["retentionDurationInDays"] = soft_delete["retentionDurationInDays"]
            ctx.perform(
                "Disable soft delete",
                vault_id,
                ctx.service.update_data_protection_vault,
                vault_id,
                {"securitySettings": {"softDeleteSettings": settings}},
            )

        for deleted in ctx.service.list_deleted_backup_instances(vault_id):
            ctx.perform(
                "Undo backup instance deletion",
                deleted.get("name", deleted["id"]),
                ctx.service.undelete_backup_instance,
                deleted["id"],
            )

        for instance in ctx.service.list_backup_instances(vault_id):
            ctx.perform(
                "Remove backup instance",
                instance.get("name", instance["id"]),
                ctx.service.delete_backup_instance,
                instance["id"],
            )

        for policy in ctx.service.list_backup_policies(vault_id):
            ctx.perform(
                "Remove backup policy",
                policy.get("name", policy["id"]),
                ctx.service.delete_backup_policy,
                policy["id"],
            )

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Delete the emptied vault."""
        ctx.perform("Remove vault", target.resource_id, ctx.service.delete_by_id, target.resource_id, force=True)


def _is_soft_deleted(item: Dict[str, Any]) -> bool:
    """Whether a protected item is in the 'to be deleted' soft-delete state."""
    properties = item.get("properties", {})
    return bool(properties.get("isScheduledForDeferredDelete")) or properties.get("protectionState") == "ToBeDeleted"

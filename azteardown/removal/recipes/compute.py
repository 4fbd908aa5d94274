"""Removal recipes for compute resources."""

from __future__ import annotations

import logging
from typing import Tuple

from ...azure.service import API_VERSIONS
from ...models.removal_target import RemovalTarget
from ...models.retry_policy import PROVIDER_STATE_POLICY
from ...utils.polling import PollTimeoutError
from ..context import RemovalContext
from .base import RemovalRecipe

logger = logging.getLogger(__name__)


class DiskEncryptionSetRecipe(RemovalRecipe):
    """Disk encryption sets: revoke the set's grant on its key vault, then delete the set.

    Deleting the set does not clean up the vault's access policy for the
    set's managed identity, so the policy entry is removed first.
    """

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.Compute/diskEncryptionSets",)

    def pre_steps(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Remove the access policy of the set's identity from its key vault."""
        identifier = target.identifier
        des = ctx.service.get_disk_encryption_set(identifier.subscription_id, identifier.resource_group, identifier.name)
        if des is None:
            logger.info(f"Disk encryption set {target.resource_id} already deleted")
            return

        vault_id = des.get("properties", {}).get("activeKey", {}).get("sourceVault", {}).get("id")
        principal_id = (des.get("identity") or {}).get("principalId")
        if not vault_id or not principal_id:
            logger.info(f"Disk encryption set {identifier.name} has no key vault grant to revoke")
            return

        vault = ctx.service.get_key_vault(vault_id)
        if vault is None:
            logger.info(f"Key vault {vault_id} no longer exists")
            return

        vault_properties = vault.get("properties", {})
        if vault_properties.get("enableRbacAuthorization"):
            # RBAC vaults grant through role assignments, which are removed as targets of their own
            logger.info(f"Key vault {vault_id} uses RBAC authorization, no access policy to remove")
            return

        ctx.perform(
            "Remove key vault access policy",
            f"{principal_id} from {vault_id}",
            ctx.service.remove_key_vault_access_policy,
            vault_id,
            vault_properties.get("tenantId"),
            principal_id,
        )

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Delete the disk encryption set."""
        ctx.perform("Remove resource", target.resource_id, ctx.service.delete_by_id, target.resource_id, force=True)


class ImageTemplateRecipe(RemovalRecipe):
    """Image Builder templates: raw delete, then poll best-effort for the template to disappear."""

    policy = PROVIDER_STATE_POLICY

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.VirtualMachineImages/imageTemplates",)

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Issue the delete request without waiting on the operation."""
        ctx.perform("Remove image template", target.resource_id, self._delete, ctx, target.resource_id)

    def post_wait(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Poll until the template is gone; exhaustion only warns."""
        try:
            ctx.poll(
                lambda: self._deleted(ctx, target.resource_id),
                self.policy,
                f"image template {target.identifier.name} to be deleted",
            )
        except PollTimeoutError as e:
            logger.warning(f"{e}; continuing, the provider finishes the deletion asynchronously")

    def _delete(self, ctx: RemovalContext, resource_id: str) -> None:
        response = ctx.service.request("DELETE", resource_id, API_VERSIONS["imageTemplates"])
        response.raise_for_status(allow_not_found=True)

    def _deleted(self, ctx: RemovalContext, resource_id: str) -> bool:
        """True once the template is gone; a 400 is fatal, anything else keeps polling."""
        response = ctx.service.request("GET", resource_id, API_VERSIONS["imageTemplates"])
        if response.not_found:
            return True
        if response.status_code == 400:
            response.raise_for_status()
        return False

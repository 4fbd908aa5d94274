"""Removal recipes for resources that are soft-deleted and must be purged.

Deleting these resources keeps a soft-deleted copy for a retention period;
re-deploying a resource with the same name fails until the copy is purged.
The purge finds the soft-deleted entry by name at subscription level, so
re-running the recipe after the resource itself is gone still purges it.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Dict, Optional, Tuple

from ...azure.service import API_VERSIONS
from ...models.removal_target import RemovalTarget
from ...models.retry_policy import RetryPolicy
from ...utils.polling import PollTimeoutError
from ..context import RemovalContext
from .base import RemovalRecipe

logger = logging.getLogger(__name__)


class SoftDeletePurgeRecipe(RemovalRecipe):
    """Delete the resource, then purge its soft-deleted copy.

    Subclasses name the provider collection listing soft-deleted entries and
    how an entry is purged.
    """

    # Soft-deleted entries show up shortly after the delete completes
    policy = RetryPolicy(interval_seconds=10, max_attempts=30)
    purge_action: Optional[str] = None

    @property
    @abstractmethod
    def namespace(self) -> str:
        """Provider namespace (e.g. ``Microsoft.KeyVault``)."""
        pass

    @property
    @abstractmethod
    def deleted_collection(self) -> str:
        """Subscription-level collection of soft-deleted entries."""
        pass

    @property
    @abstractmethod
    def api_version(self) -> str:
        """API version of the soft-delete endpoints."""
        pass

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Delete the live resource."""
        ctx.perform("Remove resource", target.resource_id, ctx.service.delete_by_id, target.resource_id, force=True)

    def post_wait(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Purge the soft-deleted copy once it is listed."""
        if ctx.dry_run:
            # The soft-deleted entry only exists after a real delete
            ctx.perform(
                "Purge soft-deleted resource",
                target.resource_id,
                ctx.service.purge_deleted_resource,
                target.resource_id,
                self.api_version,
            )
            return

        try:
            entry = ctx.poll(
                lambda: self._find_deleted_entry(ctx, target),
                self.policy,
                f"soft-deleted {target.identifier.name} to be listed",
            )
        except PollTimeoutError as e:
            logger.warning(f"No soft-deleted entry found for {target.resource_id}, nothing to purge: {e}")
            return

        reason = self.purge_blocked_reason(entry)
        if reason:
            logger.info(f"Not purging {target.resource_id}: {reason}")
            return

        ctx.perform(
            "Purge soft-deleted resource",
            entry["id"],
            ctx.service.purge_deleted_resource,
            entry["id"],
            self.api_version,
            action=self.purge_action,
        )

    def purge_blocked_reason(self, entry: Dict[str, Any]) -> Optional[str]:
        """Reason the soft-deleted entry cannot be purged, or None."""
        return None

    def _find_deleted_entry(self, ctx: RemovalContext, target: RemovalTarget) -> Optional[Dict[str, Any]]:
        identifier = target.identifier
        entries = ctx.service.list_deleted_resources(
            identifier.subscription_id,
            self.namespace,
            self.deleted_collection,
            self.api_version,
        )
        for entry in entries:
            if entry.get("name", "").lower() == identifier.name.lower() and self._same_resource(entry, target):
                return entry
        return None

    def _same_resource(self, entry: Dict[str, Any], target: RemovalTarget) -> bool:
        """Whether a soft-deleted entry belongs to the target (names are only unique per scope)."""
        original_id = entry.get("properties", {}).get("vaultId") or entry.get("properties", {}).get("serviceId")
        if original_id:
            return original_id.lower() == target.resource_id.lower()
        return True


class CognitiveServicesAccountRecipe(SoftDeletePurgeRecipe):
    """Cognitive Services accounts: delete, then purge the soft-deleted account."""

    namespace = "Microsoft.CognitiveServices"
    deleted_collection = "deletedAccounts"
    api_version = API_VERSIONS["cognitiveServices"]

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.CognitiveServices/accounts",)

    def _same_resource(self, entry: Dict[str, Any], target: RemovalTarget) -> bool:
        """Deleted account IDs embed the original resource group."""
        resource_group = target.identifier.resource_group or ""
        return f"/resourcegroups/{resource_group.lower()}/" in entry.get("id", "").lower()


class ApiManagementServiceRecipe(SoftDeletePurgeRecipe):
    """API Management services: delete, then purge the soft-deleted service."""

    namespace = "Microsoft.ApiManagement"
    deleted_collection = "deletedservices"
    api_version = API_VERSIONS["apiManagement"]

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.ApiManagement/service",)

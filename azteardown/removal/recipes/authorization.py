"""Removal recipes for authorization resources: locks, role assignments and PIM requests."""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Tuple

from ...models.removal_target import RemovalTarget
from ..context import RemovalContext
from ..locks import LockRemover
from .base import RemovalRecipe

logger = logging.getLogger(__name__)

# PIM rejects revoking a grant within this many seconds of its creation
PIM_REVOCATION_COOLDOWN_SECONDS = 5 * 60


class LockRecipe(RemovalRecipe):
    """Management locks are removed through the lock-removal capability."""

    def __init__(self, lock_remover: Optional[LockRemover] = None) -> None:
        self.lock_remover = lock_remover or LockRemover()

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.Authorization/locks",)

    @property
    def removes_locks(self) -> bool:
        """The target is itself a lock; there is no lock scope to clear first."""
        return False

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Delegate to the lock remover."""
        self.lock_remover.remove_lock(ctx, target.resource_id)


class RoleAssignmentRecipe(RemovalRecipe):
    """Role assignments are looked up on their scope and removed there."""

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.Authorization/roleAssignments",)

    @property
    def removes_locks(self) -> bool:
        """Locks cannot be scoped to a role assignment."""
        return False

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Remove the assignment if it still exists on its scope."""
        scope = target.identifier.scope
        assignments = ctx.service.list_role_assignments(scope)
        matching = [a for a in assignments if a.get("id", "").lower() == target.resource_id.lower()]

        if not matching:
            logger.info(f"Role assignment {target.resource_id} already removed")
            return

        ctx.perform("Remove role assignment", target.resource_id, ctx.service.delete_role_assignment, matching[0]["id"])


class RoleScheduleRequestRecipe(RemovalRecipe):
    """PIM schedule requests are revoked by an 'AdminRemove' request, not by delete.

    The revocation is a brand-new request carrying the same principal and role
    under a freshly generated name. PIM rejects it within 5 minutes of the
    original grant, so the recipe always waits out that period first.
    """

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return (
            "Microsoft.Authorization/roleEligibilityScheduleRequests",
            "Microsoft.Authorization/roleAssignmentScheduleRequests",
        )

    @property
    def removes_locks(self) -> bool:
        """Locks cannot be scoped to a schedule request."""
        return False

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Issue the AdminRemove request."""
        identifier = target.identifier
        scope = identifier.scope
        request_kind = identifier.segments[-2]

        original = ctx.service.get_role_schedule_request(scope, request_kind, identifier.name)
        if original is None:
            logger.info(f"Schedule request {target.resource_id} no longer exists")
            return

        properties = original.get("properties", {})
        request_name = str(uuid.uuid4())
        revocation = {
            "principalId": properties.get("principalId"),
            "roleDefinitionId": properties.get("roleDefinitionId"),
            "requestType": "AdminRemove",
            "justification": f"Revoke {identifier.name}",
        }

        ctx.wait(PIM_REVOCATION_COOLDOWN_SECONDS, "PIM rejects revocations within 5 minutes of the grant")
        ctx.perform(
            "Revoke (AdminRemove)",
            f"{request_kind}/{identifier.name} as {request_name}",
            ctx.service.create_role_schedule_request,
            scope,
            request_kind,
            request_name,
            revocation,
        )

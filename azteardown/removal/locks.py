"""Management lock removal.

Locks (CanNotDelete / ReadOnly) block deletion of the resource they apply to.
They are removed before a recipe runs; the provider takes a while to stop
enforcing removed locks, so removal waits until the scope reports none.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..models.retry_policy import LOCK_REMOVAL_POLICY, RetryPolicy
from ..utils.polling import PollTimeoutError
from .context import RemovalContext

logger = logging.getLogger(__name__)


class LockRemover:
    """Removes management locks from a scope.

    Attributes:
        policy: Poll policy for waiting until removed locks disappear
    """

    def __init__(self, policy: RetryPolicy = LOCK_REMOVAL_POLICY) -> None:
        """Initialize lock remover.

        Args:
            policy: Poll policy used after locks were removed
        """
        self.policy = policy

    def remove_locks(self, ctx: RemovalContext, scope: str) -> int:
        """Remove every lock applying to a scope.

        Args:
            ctx: Removal context
            scope: Resource ID the locks apply to

        Returns:
            Number of locks removed (or planned for removal in dry-run mode)

        Raises:
            ProviderRequestError: If listing or removing a lock fails
        """
        locks = ctx.service.list_locks(scope)
        if not locks:
            return 0

        for lock in locks:
            level = lock.get("properties", {}).get("level", "lock")
            ctx.perform("Remove lock", f"{lock['id']} ({level})", ctx.service.delete_lock, lock["id"])

        if ctx.dry_run:
            return len(locks)

        try:
            ctx.poll(lambda: not ctx.service.list_locks(scope), self.policy, f"locks on {scope} to be removed")
        except PollTimeoutError as e:
            logger.warning(f"Locks on {scope} still reported after removal: {e}")

        return len(locks)

    def remove_lock(self, ctx: RemovalContext, lock_id: str) -> Optional[bool]:
        """Remove a single lock by ID.

        Returns:
            True if removed, False if already absent, None if planned or declined
        """
        return ctx.perform("Remove lock", lock_id, ctx.service.delete_lock, lock_id)

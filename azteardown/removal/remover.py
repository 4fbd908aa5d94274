"""Teardown orchestrator: removes a single resource with the recipe for its type."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..azure.errors import ProviderRequestError
from ..models.removal_target import RemovalTarget
from ..models.retry_policy import RetryPolicy
from ..utils.clock import SystemClock
from .context import PlannedAction, RemovalContext
from .errors import RemovalError
from .locks import LockRemover
from .recipes.authorization import LockRecipe
from .recipes.subscription import DEFAULT_DECOMMISSION_GROUP, DEFAULT_SUBSCRIPTION_MARKER, SubscriptionAliasRecipe
from .registry import RecipeRegistry

logger = logging.getLogger(__name__)


@dataclass
class RemovalReport:
    """Outcome of removing one resource.

    Attributes:
        resource_id: Resource that was removed
        resource_type: Type that selected the recipe
        recipe: Name of the recipe that ran
        skipped: Whether the recipe refused to touch the resource
        skip_reason: Why the resource was skipped
        actions: Steps performed, planned (dry-run) or declined
    """

    resource_id: str
    resource_type: str
    recipe: str
    skipped: bool = False
    skip_reason: Optional[str] = None
    actions: List[PlannedAction] = field(default_factory=list)


class ResourceRemover:
    """Removes resources one at a time.

    Every removal reads fresh state from the service; the remover keeps no
    state between calls, so removing a partially removed resource again is
    safe.
    """

    def __init__(
        self,
        service,
        registry: Optional[RecipeRegistry] = None,
        clock: Optional[SystemClock] = None,
        lock_remover: Optional[LockRemover] = None,
        retry_policy: Optional[RetryPolicy] = None,
        subscription_marker: str = DEFAULT_SUBSCRIPTION_MARKER,
        decommission_group: str = DEFAULT_DECOMMISSION_GROUP,
    ) -> None:
        """Initialize resource remover.

        Args:
            service: Remote resource service
            registry: Recipe registry (default: every discovered recipe)
            clock: Clock for waits and polls (default: system clock)
            lock_remover: Lock removal capability
            retry_policy: Override for every poll loop (optional)
            subscription_marker: Name marker of test subscriptions that may be decommissioned
            decommission_group: Management group decommissioned subscriptions are moved to
        """
        self.service = service
        self.clock = clock or SystemClock()
        self.lock_remover = lock_remover or LockRemover()
        self.retry_policy = retry_policy
        self.registry = registry or RecipeRegistry()
        self.registry.register(LockRecipe(self.lock_remover))
        self.registry.register(SubscriptionAliasRecipe(subscription_marker, decommission_group))

    def remove(
        self,
        resource_id: str,
        resource_type: Optional[str] = None,
        dry_run: bool = False,
        force: bool = False,
        confirm: Optional[Callable[[str], bool]] = None,
    ) -> RemovalReport:
        """Remove a resource (or confirm it is already gone).

        Args:
            resource_id: Full ARM resource ID
            resource_type: Resource type (derived from the ID when omitted)
            dry_run: Report intended actions without performing them
            force: Do not ask for confirmation before each mutation
            confirm: Confirmation callback used when not forced

        Returns:
            Report of the removal

        Raises:
            ValueError: If the resource ID is malformed
            RemovalError: If any step of the recipe fails
        """
        target = RemovalTarget(resource_id, resource_type)
        recipe = self.registry.recipe_for(target.resource_type)
        report = RemovalReport(target.resource_id, target.resource_type, recipe.name)

        reason = recipe.skip_reason(target)
        if reason:
            logger.info(f"Skipping {target.resource_id}: {reason}")
            report.skipped = True
            report.skip_reason = reason
            return report

        ctx = RemovalContext(
            service=self.service,
            clock=self.clock,
            dry_run=dry_run,
            force=force,
            confirm=confirm,
            retry_policy=self.retry_policy,
            actions=report.actions,
        )

        logger.debug(f"Removing {target.resource_id} with {recipe.name}")

        try:
            if recipe.removes_locks:
                ctx.step = "lock removal"
                self._remove_locks(ctx, target)
            ctx.step = "pre-removal steps"
            recipe.pre_steps(ctx, target)
            ctx.step = "removal"
            recipe.remove_step(ctx, target)
            ctx.step = "post-removal wait"
            recipe.post_wait(ctx, target)
        except Exception as e:
            raise RemovalError(target.resource_id, target.resource_type, ctx.step, e) from e

        return report

    def _remove_locks(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Remove locks on the target.

        Provider rejections only warn: a lock left in place surfaces when the
        delete fails. Transport errors and poll timeouts propagate.
        """
        try:
            self.lock_remover.remove_locks(ctx, target.resource_id)
        except ProviderRequestError as e:
            logger.warning(f"Could not remove locks on {target.resource_id}: {e}")

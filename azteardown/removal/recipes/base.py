"""Base class for removal recipes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from ...models.removal_target import RemovalTarget
from ..context import RemovalContext


class RemovalRecipe(ABC):
    """Abstract base class for all removal recipes.

    A recipe removes one kind of resource in three phases:
    1. ``pre_steps``: mutations required before deletion is legal
    2. ``remove_step``: the actual removal call (exactly one per recipe)
    3. ``post_wait``: optional wait until the provider confirms the removal

    Recipes are stateless; everything they need is read fresh from the
    service on the context.
    """

    @property
    @abstractmethod
    def resource_types(self) -> Tuple[str, ...]:
        """Resource types handled by this recipe.

        Returns:
            Tuple of ARM types (e.g. ("Microsoft.Compute/diskEncryptionSets",))
        """
        pass

    @property
    def name(self) -> str:
        """Recipe name used in reports."""
        return type(self).__name__

    @property
    def removes_locks(self) -> bool:
        """Whether management locks on the target are removed before the recipe runs.

        Locks on the target are cleared before every recipe except where no lock
        can apply: locks themselves, role assignments and PIM schedule requests
        (locks cannot be scoped to them), subscription aliases (tenant scope)
        and skip recipes, which make no service calls at all.
        """
        return True

    def skip_reason(self, target: RemovalTarget) -> Optional[str]:
        """Reason the target must not be touched at all, or None to proceed.

        A skipped target gets no service calls of any kind.
        """
        return None

    def pre_steps(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Mutations required before the removal call is accepted by the provider."""

    @abstractmethod
    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Issue the removal call.

        Args:
            ctx: Removal context (service, clock, mode)
            target: Resource to remove
        """
        pass

    def post_wait(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Wait until the provider confirms the removal."""


class SkipRecipe(RemovalRecipe):
    """Recipe for resources that must never be removed independently.

    Subclasses declare the types and the reason; no service call is made.
    """

    reason = "Handled by a different recipe"

    @property
    def removes_locks(self) -> bool:
        """Skipped resources get no lock removal either."""
        return False

    def skip_reason(self, target: RemovalTarget) -> Optional[str]:
        """Always skip."""
        return self.reason

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """No-op."""

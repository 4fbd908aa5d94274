"""Fallback recipe for resource types without special removal needs."""

from __future__ import annotations

from typing import Tuple

from ...models.removal_target import RemovalTarget
from ..context import RemovalContext
from .base import RemovalRecipe


class DefaultRecipe(RemovalRecipe):
    """Forced generic delete by ID, no pre-steps."""

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Registered as the fallback, not for specific types."""
        return ()

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Delete the resource by its full ID."""
        ctx.perform("Remove resource", target.resource_id, ctx.service.delete_by_id, target.resource_id, force=True)

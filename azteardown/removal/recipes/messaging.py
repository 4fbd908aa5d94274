"""Removal recipes for messaging namespaces."""

from __future__ import annotations

from typing import Optional, Tuple

from ...models.removal_target import RemovalTarget
from ..context import RemovalContext
from .base import RemovalRecipe

# Created with every namespace and rejected by the provider on delete
DEFAULT_RULE_NAME = "RootManageSharedAccessKey"


class AuthorizationRuleRecipe(RemovalRecipe):
    """Namespace authorization rules, except the namespace's built-in default rule."""

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return (
            "Microsoft.ServiceBus/namespaces/authorizationRules",
            "Microsoft.EventHub/namespaces/authorizationRules",
        )

    def skip_reason(self, target: RemovalTarget) -> Optional[str]:
        """The default rule only goes away with its namespace."""
        if target.identifier.name == DEFAULT_RULE_NAME:
            return f"{DEFAULT_RULE_NAME} cannot be removed from its namespace"
        return None

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Force-delete the rule."""
        ctx.perform("Remove authorization rule", target.resource_id, ctx.service.delete_by_id, target.resource_id, force=True)

"""Removal recipe for subscription aliases created for test landing zones."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ...models.removal_target import RemovalTarget
from ..context import RemovalContext
from .base import RemovalRecipe

logger = logging.getLogger(__name__)

DEFAULT_SUBSCRIPTION_MARKER = "bicep-lz-vending-automation"
DEFAULT_DECOMMISSION_GROUP = "bicep-lz-vending-automation-decom"

# Created by Azure in every subscription that gets a virtual network
NETWORK_WATCHER_RESOURCE_GROUP = "NetworkWatcherRG"


class SubscriptionAliasRecipe(RemovalRecipe):
    """Decommission a test subscription: clean up, park it in the decommission group, cancel it.

    Only aliases whose name contains the marker are touched; every other
    subscription alias is skipped without any service call.
    """

    def __init__(
        self,
        marker: str = DEFAULT_SUBSCRIPTION_MARKER,
        decommission_group: str = DEFAULT_DECOMMISSION_GROUP,
    ) -> None:
        self.marker = marker
        self.decommission_group = decommission_group

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.Subscription/aliases",)

    @property
    def removes_locks(self) -> bool:
        """Aliases live at tenant scope where no lock applies."""
        return False

    def skip_reason(self, target: RemovalTarget) -> Optional[str]:
        """Refuse every alias that is not a test subscription."""
        if not self.marker or self.marker not in target.identifier.name:
            return f"Subscription alias does not contain the test marker '{self.marker}'"
        return None

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Delete the network watcher group, move the subscription, then cancel it."""
        alias = ctx.service.get_subscription_alias(target.identifier.name)
        subscription_id = (alias or {}).get("properties", {}).get("subscriptionId")
        if not subscription_id:
            logger.info(f"Subscription alias {target.identifier.name} no longer resolves to a subscription")
            return

        if ctx.service.get_resource_group(subscription_id, NETWORK_WATCHER_RESOURCE_GROUP) is not None:
            ctx.perform(
                "Remove resource group",
                f"{NETWORK_WATCHER_RESOURCE_GROUP} in {subscription_id}",
                ctx.service.delete_resource_group,
                subscription_id,
                NETWORK_WATCHER_RESOURCE_GROUP,
            )

        if ctx.service.get_management_group_subscription(self.decommission_group, subscription_id) is None:
            ctx.perform(
                "Move subscription",
                f"{subscription_id} to {self.decommission_group}",
                ctx.service.move_subscription_to_management_group,
                self.decommission_group,
                subscription_id,
            )

        subscription = ctx.service.get_subscription(subscription_id) or {}
        if subscription.get("state") == "Enabled":
            ctx.perform("Cancel subscription", subscription_id, ctx.service.cancel_subscription, subscription_id)
        else:
            logger.info(f"Subscription {subscription_id} is {subscription.get('state', 'gone')}, not cancelling")

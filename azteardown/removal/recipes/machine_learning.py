"""Removal recipe for machine learning workspaces."""

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


class MachineLearningWorkspaceRecipe(RemovalRecipe):
    """Machine learning workspaces: purge instead of soft-delete, then wait for the workspace to disappear.

    A soft-deleted workspace blocks later deployments of a workspace with the
    same name, so the wait matters even though it is best-effort.
    """

    policy = PROVIDER_STATE_POLICY

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.MachineLearningServices/workspaces",)

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Issue the purge request."""
        ctx.perform("Purge workspace", target.resource_id, self._purge, ctx, target.resource_id)

    def post_wait(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Poll the resource listing until the workspace is gone; exhaustion only warns."""
        try:
            ctx.poll(
                lambda: self._absent(ctx, target),
                self.policy,
                f"workspace {target.identifier.name} to be purged",
            )
        except PollTimeoutError as e:
            logger.warning(f"{e}; a re-deployment with the same name may fail until the purge completes")

    def _purge(self, ctx: RemovalContext, resource_id: str) -> None:
        response = ctx.service.request(
            "DELETE",
            resource_id,
            API_VERSIONS["machineLearning"],
            query={"forceToPurge": "true"},
        )
        response.raise_for_status(allow_not_found=True)

    def _absent(self, ctx: RemovalContext, target: RemovalTarget) -> bool:
        identifier = target.identifier
        resources = ctx.service.list_resources(identifier.subscription_id, identifier.resource_group, target.resource_type)
        return all(r.get("id", "").lower() != target.resource_id.lower() for r in resources)

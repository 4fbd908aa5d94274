"""Removal recipes for monitoring resources."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from ...azure.service import API_VERSIONS
from ...models.removal_target import RemovalTarget
from ...models.retry_policy import PROVIDER_STATE_POLICY
from ...utils.polling import PollTimeoutError
from ..context import RemovalContext
from .base import RemovalRecipe

logger = logging.getLogger(__name__)

DIAGNOSTIC_SETTINGS_TYPE = "Microsoft.Insights/diagnosticSettings"

# Replication cannot be disabled until this long after it was enabled
REPLICATION_COOLDOWN = timedelta(hours=1)


class DiagnosticSettingRecipe(RemovalRecipe):
    """Diagnostic settings are deleted by (parent resource, setting name), not by full ID."""

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return (DIAGNOSTIC_SETTINGS_TYPE,)

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Delete the setting from its parent resource."""
        identifier = target.identifier
        parent_id = identifier.strip_extension(DIAGNOSTIC_SETTINGS_TYPE).value
        name = identifier.name

        ctx.perform(
            "Remove diagnostic setting",
            f"{name} from {parent_id}",
            ctx.service.delete_diagnostic_setting,
            parent_id,
            name,
        )


class LogAnalyticsWorkspaceRecipe(RemovalRecipe):
    """Log Analytics workspaces: disable data replication, then force-delete permanently.

    Replication can only be disabled one hour after it was enabled, and the
    workspace cannot be deleted while replication is on.
    """

    policy = PROVIDER_STATE_POLICY

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.OperationalInsights/workspaces",)

    def pre_steps(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Disable replication when it is enabled, respecting the creation cool-down."""
        path = self._workspace_path(target)
        workspace = self._get_workspace(ctx, path)
        if workspace is None:
            logger.info(f"Workspace {target.resource_id} already deleted")
            return

        replication = workspace.get("properties", {}).get("replication") or {}
        if not replication.get("enabled"):
            return

        created = _parse_timestamp(replication.get("createdDate"))
        if created is not None:
            ready_at = created + REPLICATION_COOLDOWN
            remaining = (ready_at - ctx.clock.now()).total_seconds()
            ctx.wait(remaining, f"replication of {target.identifier.name} can only be disabled 1 hour after it was enabled")

        body = {
            "location": workspace.get("location"),
            "properties": {"replication": {"enabled": False}},
        }
        ctx.perform("Disable replication", target.resource_id, self._put_workspace, ctx, path, body)

        try:
            ctx.poll(
                lambda: self._replication_disabled(ctx, path),
                self.policy,
                f"replication of {target.identifier.name} to be disabled",
            )
        except PollTimeoutError as e:
            # No fallback: the permanent delete below fails if replication is still on
            logger.info(str(e))

    def remove_step(self, ctx: RemovalContext, target: RemovalTarget) -> None:
        """Permanently delete the workspace, bypassing the recoverable soft-delete state."""
        path = self._workspace_path(target)
        ctx.perform("Permanently remove workspace", target.resource_id, self._force_delete, ctx, path)

    def _workspace_path(self, target: RemovalTarget) -> str:
        identifier = target.identifier
        return (
            f"/subscriptions/{identifier.subscription_id}/resourceGroups/{identifier.resource_group}"
            f"/providers/Microsoft.OperationalInsights/workspaces/{identifier.name}"
        )

    def _get_workspace(self, ctx: RemovalContext, path: str) -> Optional[Dict[str, Any]]:
        response = ctx.service.request("GET", path, API_VERSIONS["operationalInsights"])
        if response.not_found:
            return None
        return response.raise_for_status().json

    def _put_workspace(self, ctx: RemovalContext, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        response = ctx.service.request("PUT", path, API_VERSIONS["operationalInsights"], body=body)
        return response.raise_for_status().json

    def _replication_disabled(self, ctx: RemovalContext, path: str) -> bool:
        workspace = self._get_workspace(ctx, path)
        if workspace is None:
            return True

        properties = workspace.get("properties", {})
        replication = properties.get("replication") or {}
        return not replication.get("enabled") and properties.get("provisioningState") == "Succeeded"

    def _force_delete(self, ctx: RemovalContext, path: str) -> bool:
        response = ctx.service.request("DELETE", path, API_VERSIONS["operationalInsights"], query={"force": "true"})
        response.raise_for_status(allow_not_found=True)
        return not response.not_found


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ARM timestamp into an aware UTC datetime.

    ARM returns up to 7 fractional digits and a trailing "Z".
    """
    if not value:
        return None

    text = value.strip().replace("Z", "+00:00")
    if "." in text:
        head, _, rest = text.partition(".")
        digits = ""
        while rest and rest[0].isdigit():
            digits += rest[0]
            rest = rest[1:]
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

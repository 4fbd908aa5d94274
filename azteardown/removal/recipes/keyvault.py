"""Removal recipes for Key Vault resources."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from ...azure.service import API_VERSIONS
from .base import SkipRecipe
from .soft_delete import SoftDeletePurgeRecipe


class KeyVaultChildSkipRecipe(SkipRecipe):
    """Keys and access policies live and die with their vault."""

    reason = "Removed together with the key vault"

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return (
            "Microsoft.KeyVault/vaults/keys",
            "Microsoft.KeyVault/vaults/accessPolicies",
        )


class KeyVaultRecipe(SoftDeletePurgeRecipe):
    """Key vaults: delete, then purge unless purge protection is enabled."""

    namespace = "Microsoft.KeyVault"
    deleted_collection = "deletedVaults"
    api_version = API_VERSIONS["keyVault"]
    purge_action = "purge"

    @property
    def resource_types(self) -> Tuple[str, ...]:
        """Return handled types."""
        return ("Microsoft.KeyVault/vaults",)

    def purge_blocked_reason(self, entry: Dict[str, Any]) -> Optional[str]:
        """Purge-protected vaults can only expire."""
        if entry.get("properties", {}).get("purgeProtectionEnabled"):
            return "purge protection is enabled"
        return None

"""Remote resource service used by removal recipes.

Groups the generic resource operations (get, delete, list) and the
provider-specific typed operations the removal recipes need on top of a
single ARM REST client.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..models.resource_id import ResourceIdentifier
from ..models.retry_policy import OPERATION_POLICY, RetryPolicy
from .client import ArmClient, ArmResponse

logger = logging.getLogger(__name__)

# API versions per resource type / operation family
API_VERSIONS = {
    "providers": "2021-04-01",
    "resources": "2021-04-01",
    "locks": "2020-05-01",
    "diagnosticSettings": "2021-05-01-preview",
    "diskEncryptionSets": "2023-04-02",
    "keyVault": "2023-07-01",
    "recoveryServices": "2023-04-01",
    "dataProtection": "2024-04-01",
    "operationalInsights": "2025-02-01",
    "imageTemplates": "2022-07-01",
    "machineLearning": "2024-10-01",
    "roleAssignments": "2022-04-01",
    "roleScheduleRequests": "2020-10-01",
    "managementGroups": "2021-04-01",
    "subscriptions": "2022-12-01",
    "subscriptionAliases": "2021-10-01",
    "cognitiveServices": "2023-05-01",
    "apiManagement": "2022-08-01",
    "deployments": "2021-04-01",
}

# Provider types whose DELETE accepts forceDeletion=true
FORCE_DELETION_TYPES = {
    "microsoft.compute/virtualmachines",
    "microsoft.compute/virtualmachinescalesets",
}

LOCK_PROVIDER_PATH = "providers/Microsoft.Authorization/locks"


class ResourceService:
    """Generic and typed resource operations against Azure Resource Manager.

    Attributes:
        client: ARM REST client
        operation_policy: Retry policy used when following long-running operations
    """

    def __init__(self, client: ArmClient, operation_policy: RetryPolicy = OPERATION_POLICY) -> None:
        """Initialize resource service.

        Args:
            client: Authenticated ARM client
            operation_policy: Poll policy for long-running operations
        """
        self.client = client
        self.operation_policy = operation_policy
        self._api_versions: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Generic operations
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        api_version: Optional[str] = None,
        body: Optional[Any] = None,
        query: Optional[Dict[str, Any]] = None,
    ) -> ArmResponse:
        """Issue a raw request by path; the caller checks the status."""
        return self.client.request(method, path, api_version, body=body, query=query)

    def get_by_id(self, resource_id: str, api_version: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Read a resource by ID.

        Returns:
            Resource body, or None if the resource does not exist

        Raises:
            ProviderRequestError: On any other non-2xx response
        """
        api_version = api_version or self.resolve_api_version(resource_id)
        response = self.client.request("GET", resource_id, api_version)
        if response.not_found:
            return None
        return response.raise_for_status().json

    def delete_by_id(self, resource_id: str, api_version: Optional[str] = None, force: bool = True) -> bool:
        """Delete a resource by ID and wait for the provider to finish.

        Args:
            resource_id: Full resource ID
            api_version: API version (resolved from provider metadata when omitted)
            force: Request forced deletion where the provider type supports it

        Returns:
            True if the resource was deleted, False if it was already absent

        Raises:
            ProviderRequestError: On non-2xx responses other than 404
        """
        api_version = api_version or self.resolve_api_version(resource_id)
        query = None
        resource_type = (ResourceIdentifier(resource_id).resource_type or "").lower()
        if force and resource_type in FORCE_DELETION_TYPES:
            query = {"forceDeletion": "true"}

        response = self.client.request("DELETE", resource_id, api_version, query=query)
        return self._finish_delete(response)

    def list_children(self, parent_id: str, child_type: str, api_version: str) -> List[Dict[str, Any]]:
        """List child resources of a parent (e.g. ``backupInstances`` of a backup vault)."""
        return self.client.list_all(f"{parent_id}/{child_type}", api_version)

    def list_resources(
        self,
        subscription_id: str,
        resource_group: Optional[str] = None,
        resource_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """List resources in a subscription or resource group, optionally filtered by type."""
        path = f"/subscriptions/{subscription_id}"
        if resource_group:
            path += f"/resourceGroups/{resource_group}"
        path += "/resources"

        query = {"$filter": f"resourceType eq '{resource_type}'"} if resource_type else None
        return self.client.list_all(path, API_VERSIONS["resources"], query=query)

    def resolve_api_version(self, resource_id: str) -> str:
        """Resolve the newest API version of a resource's type from provider metadata.

        Stable versions are preferred over preview versions. Results are memoised
        per service instance.

        Raises:
            ValueError: If the type cannot be derived or the provider does not list it
        """
        identifier = ResourceIdentifier(resource_id)
        resource_type = identifier.resource_type
        if not resource_type:
            raise ValueError(f"Cannot derive resource type from {resource_id}")

        cache_key = resource_type.lower()
        if cache_key in self._api_versions:
            return self._api_versions[cache_key]

        if cache_key == "microsoft.resources/resourcegroups":
            version = API_VERSIONS["resources"]
        elif cache_key == "microsoft.resources/subscriptions":
            version = API_VERSIONS["subscriptions"]
        else:
            version = self._lookup_api_version(identifier, resource_type)

        self._api_versions[cache_key] = version
        return version

    def _lookup_api_version(self, identifier: ResourceIdentifier, resource_type: str) -> str:
        """Read provider metadata and pick an API version for the type."""
        namespace, _, type_name = resource_type.partition("/")
        if identifier.subscription_id:
            path = f"/subscriptions/{identifier.subscription_id}/providers/{namespace}"
        else:
            path = f"/providers/{namespace}"

        provider = self.client.request("GET", path, API_VERSIONS["providers"]).raise_for_status().json
        for entry in provider.get("resourceTypes", []):
            if entry.get("resourceType", "").lower() != type_name.lower():
                continue

            versions = sorted(entry.get("apiVersions", []), reverse=True)
            stable = [v for v in versions if "preview" not in v.lower()]
            if stable or versions:
                return (stable or versions)[0]

        raise ValueError(f"Provider {namespace} does not list an API version for {resource_type}")

    def _finish_delete(self, response: ArmResponse) -> bool:
        """Interpret a DELETE response, following long-running operations."""
        if response.not_found:
            logger.info(f"Resource {response.path} already deleted")
            return False

        response.raise_for_status()
        self.client.wait_for_operation(response, self.operation_policy)
        return response.status_code != 204

    def _mutate(
        self,
        method: str,
        path: str,
        api_version: str,
        body: Optional[Any] = None,
        query: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Issue a mutation, raise on failure and wait for completion."""
        response = self.client.request(method, path, api_version, body=body, query=query).raise_for_status()
        final = self.client.wait_for_operation(response, self.operation_policy)
        return final.json or response.json

    def _get_optional(self, path: str, api_version: str) -> Optional[Dict[str, Any]]:
        """GET a resource, returning None on 404."""
        response = self.client.request("GET", path, api_version)
        if response.not_found:
            return None
        return response.raise_for_status().json

    def _delete(self, path: str, api_version: str, query: Optional[Dict[str, Any]] = None) -> bool:
        """DELETE a resource by path; False when already absent."""
        return self._finish_delete(self.client.request("DELETE", path, api_version, query=query))

    # ------------------------------------------------------------------
    # Diagnostic settings
    # ------------------------------------------------------------------

    def delete_diagnostic_setting(self, parent_id: str, name: str) -> bool:
        """Delete a diagnostic setting by its parent resource and name."""
        path = f"{parent_id}/providers/Microsoft.Insights/diagnosticSettings/{name}"
        return self._delete(path, API_VERSIONS["diagnosticSettings"])

    # ------------------------------------------------------------------
    # Management locks
    # ------------------------------------------------------------------

    def list_locks(self, scope: str) -> List[Dict[str, Any]]:
        """List management locks applying at or above a scope."""
        return self.client.list_all(f"{scope}/{LOCK_PROVIDER_PATH}", API_VERSIONS["locks"])

    def delete_lock(self, lock_id: str) -> bool:
        """Delete a management lock by its ID."""
        return self._delete(lock_id, API_VERSIONS["locks"])

    # ------------------------------------------------------------------
    # Compute / Key Vault
    # ------------------------------------------------------------------

    def get_disk_encryption_set(self, subscription_id: str, resource_group: str, name: str) -> Optional[Dict[str, Any]]:
        """Read a disk encryption set."""
        path = (
            f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
            f"/providers/Microsoft.Compute/diskEncryptionSets/{name}"
        )
        return self._get_optional(path, API_VERSIONS["diskEncryptionSets"])

    def get_key_vault(self, vault_id: str) -> Optional[Dict[str, Any]]:
        """Read a key vault."""
        return self._get_optional(vault_id, API_VERSIONS["keyVault"])

    def remove_key_vault_access_policy(self, vault_id: str, tenant_id: str, object_id: str) -> Dict[str, Any]:
        """Remove the access policy entry of one principal from a key vault."""
        body = {
            "properties": {
                "accessPolicies": [
                    {
                        "tenantId": tenant_id,
                        "objectId": object_id,
                        "permissions": {"keys": [], "secrets": [], "certificates": []},
                    }
                ]
            }
        }
        return self._mutate("PUT", f"{vault_id}/accessPolicies/remove", API_VERSIONS["keyVault"], body=body)

    def list_deleted_resources(
        self,
        subscription_id: str,
        namespace: str,
        collection: str,
        api_version: str,
    ) -> List[Dict[str, Any]]:
        """List soft-deleted resources of a provider (e.g. Key Vault ``deletedVaults``)."""
        return self.list_children(f"/subscriptions/{subscription_id}/providers/{namespace}", collection, api_version)

    def purge_deleted_resource(self, deleted_id: str, api_version: str, action: Optional[str] = None) -> bool:
        """Permanently purge a soft-deleted resource.

        Args:
            deleted_id: ID of the soft-deleted entry
            api_version: Provider API version
            action: POST action name (Key Vault uses ``purge``); DELETE on the entry when omitted

        Returns:
            True if purged, False if the entry no longer exists
        """
        if action is None:
            return self._delete(deleted_id, api_version)

        response = self.client.request("POST", f"{deleted_id}/{action}", api_version)
        if response.not_found:
            return False
        self.client.wait_for_operation(response.raise_for_status(), self.operation_policy)
        return True

    # ------------------------------------------------------------------
    # Recovery Services vaults
    # ------------------------------------------------------------------

    def get_backup_vault_config(self, vault_id: str) -> Optional[Dict[str, Any]]:
        """Read the soft-delete configuration of a Recovery Services vault; None when the vault is gone."""
        return self._get_optional(f"{vault_id}/backupconfig/vaultconfig", API_VERSIONS["recoveryServices"])

    def set_backup_vault_soft_delete(self, vault_id: str, state: str) -> Dict[str, Any]:
        """Set the soft-delete feature state of a Recovery Services vault."""
        body = {"properties": {"softDeleteFeatureState": state}}
        return self._mutate("PATCH", f"{vault_id}/backupconfig/vaultconfig", API_VERSIONS["recoveryServices"], body=body)

    def list_backup_items(
        self,
        vault_id: str,
        backup_management_type: str = "AzureIaasVM",
        item_type: str = "VM",
    ) -> List[Dict[str, Any]]:
        """List protected backup items of a Recovery Services vault."""
        query = {"$filter": f"backupManagementType eq '{backup_management_type}' and itemType eq '{item_type}'"}
        return self.client.list_all(f"{vault_id}/backupProtectedItems", API_VERSIONS["recoveryServices"], query=query)

    def undo_backup_item_deletion(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Rehydrate a soft-deleted backup item so its protection can be removed."""
        properties = item.get("properties", {})
        body = {
            "properties": {
                "protectedItemType": properties.get("protectedItemType"),
                "sourceResourceId": properties.get("sourceResourceId"),
                "protectionState": "ProtectionStopped",
                "isRehydrate": True,
            }
        }
        return self._mutate("PUT", item["id"], API_VERSIONS["recoveryServices"], body=body)

    def disable_backup_protection(self, item: Dict[str, Any]) -> bool:
        """Stop protection of a backup item and delete its recovery points."""
        return self._delete(item["id"], API_VERSIONS["recoveryServices"])

    # ------------------------------------------------------------------
    # Data Protection backup vaults
    # ------------------------------------------------------------------

    def get_data_protection_vault(self, vault_id: str) -> Optional[Dict[str, Any]]:
        """Read a Data Protection backup vault."""
        return self._get_optional(vault_id, API_VERSIONS["dataProtection"])

    def update_data_protection_vault(self, vault_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        """Patch properties of a Data Protection backup vault."""
        return self._mutate("PATCH", vault_id, API_VERSIONS["dataProtection"], body={"properties": properties})

    def list_backup_instances(self, vault_id: str) -> List[Dict[str, Any]]:
        """List backup instances of a Data Protection backup vault."""
        return self.list_children(vault_id, "backupInstances", API_VERSIONS["dataProtection"])

    def list_deleted_backup_instances(self, vault_id: str) -> List[Dict[str, Any]]:
        """List soft-deleted backup instances of a Data Protection backup vault."""
        return self.list_children(vault_id, "deletedBackupInstances", API_VERSIONS["dataProtection"])

    def undelete_backup_instance(self, deleted_instance_id: str) -> Dict[str, Any]:
        """Undo the soft deletion of a backup instance."""
        return self._mutate("POST", f"{deleted_instance_id}/undelete", API_VERSIONS["dataProtection"])

    def delete_backup_instance(self, instance_id: str) -> bool:
        """Delete a backup instance."""
        return self._delete(instance_id, API_VERSIONS["dataProtection"])

    def list_backup_policies(self, vault_id: str) -> List[Dict[str, Any]]:
        """List backup policies of a Data Protection backup vault."""
        return self.list_children(vault_id, "backupPolicies", API_VERSIONS["dataProtection"])

    def delete_backup_policy(self, policy_id: str) -> bool:
        """Delete a backup policy."""
        return self._delete(policy_id, API_VERSIONS["dataProtection"])

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def list_role_assignments(self, scope: str) -> List[Dict[str, Any]]:
        """List role assignments at a scope."""
        path = f"{scope}/providers/Microsoft.Authorization/roleAssignments"
        return self.client.list_all(path, API_VERSIONS["roleAssignments"], query={"$filter": "atScope()"})

    def delete_role_assignment(self, assignment_id: str) -> bool:
        """Delete a role assignment by ID."""
        return self._delete(assignment_id, API_VERSIONS["roleAssignments"])

    def get_role_schedule_request(self, scope: str, request_kind: str, name: str) -> Optional[Dict[str, Any]]:
        """Read a PIM schedule request (``roleEligibilityScheduleRequests`` or ``roleAssignmentScheduleRequests``)."""
        path = f"{scope}/providers/Microsoft.Authorization/{request_kind}/{name}"
        return self._get_optional(path, API_VERSIONS["roleScheduleRequests"])

    def create_role_schedule_request(
        self,
        scope: str,
        request_kind: str,
        name: str,
        properties: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Create a PIM schedule request."""
        path = f"{scope}/providers/Microsoft.Authorization/{request_kind}/{name}"
        return self._mutate("PUT", path, API_VERSIONS["roleScheduleRequests"], body={"properties": properties})

    # ------------------------------------------------------------------
    # Subscriptions and management groups
    # ------------------------------------------------------------------

    def get_subscription_alias(self, alias_name: str) -> Optional[Dict[str, Any]]:
        """Read a subscription alias."""
        path = f"/providers/Microsoft.Subscription/aliases/{alias_name}"
        return self._get_optional(path, API_VERSIONS["subscriptionAliases"])

    def get_resource_group(self, subscription_id: str, name: str) -> Optional[Dict[str, Any]]:
        """Read a resource group."""
        return self._get_optional(f"/subscriptions/{subscription_id}/resourcegroups/{name}", API_VERSIONS["resources"])

    def delete_resource_group(self, subscription_id: str, name: str) -> bool:
        """Delete a resource group and everything in it."""
        return self._delete(f"/subscriptions/{subscription_id}/resourcegroups/{name}", API_VERSIONS["resources"])

    def get_management_group_subscription(self, group_id: str, subscription_id: str) -> Optional[Dict[str, Any]]:
        """Read the membership of a subscription in a management group (None when not a member)."""
        path = f"/providers/Microsoft.Management/managementGroups/{group_id}/subscriptions/{subscription_id}"
        response = self.client.request("GET", path, API_VERSIONS["managementGroups"])
        # Non-members are reported as 404 or 403 depending on the caller's rights on the group
        if response.status_code in (403, 404):
            return None
        return response.raise_for_status().json

    def move_subscription_to_management_group(self, group_id: str, subscription_id: str) -> Dict[str, Any]:
        """Move a subscription under a management group."""
        path = f"/providers/Microsoft.Management/managementGroups/{group_id}/subscriptions/{subscription_id}"
        return self._mutate("PUT", path, API_VERSIONS["managementGroups"])

    def get_subscription(self, subscription_id: str) -> Optional[Dict[str, Any]]:
        """Read a subscription."""
        return self._get_optional(f"/subscriptions/{subscription_id}", API_VERSIONS["subscriptions"])

    def cancel_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Cancel (disable) a subscription."""
        path = f"/subscriptions/{subscription_id}/providers/Microsoft.Subscription/cancel"
        return self._mutate("POST", path, API_VERSIONS["subscriptionAliases"])

    # ------------------------------------------------------------------
    # Deployments
    # ------------------------------------------------------------------

    def get_deployment(self, scope: str, name: str) -> Optional[Dict[str, Any]]:
        """Read a deployment at a resource group, subscription or management group scope."""
        path = f"{scope}/providers/Microsoft.Resources/deployments/{name}"
        return self._get_optional(path, API_VERSIONS["deployments"])

    def list_deployment_operations(self, scope: str, name: str) -> List[Dict[str, Any]]:
        """List the operations of a deployment."""
        path = f"{scope}/providers/Microsoft.Resources/deployments/{name}/operations"
        return self.client.list_all(path, API_VERSIONS["deployments"])


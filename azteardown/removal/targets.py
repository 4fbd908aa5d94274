"""Sources of removal targets: YAML target files and ARM deployments."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

import yaml

from ..models.removal_target import RemovalTarget

logger = logging.getLogger(__name__)

DEPLOYMENT_TYPE = "Microsoft.Resources/deployments"


def load_targets(path: Union[str, Path]) -> List[RemovalTarget]:
    """Load removal targets from a YAML file.

    The file holds either a list of entries or a mapping with a ``targets``
    list. Each entry is a resource ID string or a mapping with
    ``resource_id`` and an optional ``resource_type``.

    Args:
        path: Path to the YAML file

    Returns:
        Targets in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid YAML or an entry is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Targets file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in targets file {path}: {e}")

    if isinstance(data, dict):
        data = data.get("targets")
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"Targets file {path} must contain a list of targets")

    targets = []
    for index, entry in enumerate(data, start=1):
        try:
            if isinstance(entry, str):
                targets.append(RemovalTarget(entry))
            elif isinstance(entry, dict):
                targets.append(RemovalTarget.from_dict(entry))
            else:
                raise ValueError(f"unsupported entry {entry!r}")
        except ValueError as e:
            raise ValueError(f"Invalid target #{index} in {path}: {e}")

    return targets


class DeploymentTargetCollector:
    """Collects the resources created by an ARM deployment.

    Walks the deployment's operations, recursing into nested deployments.
    Nested deployment resources themselves are returned after everything they
    deployed.
    """

    def __init__(self, service) -> None:
        """Initialize collector.

        Args:
            service: Remote resource service
        """
        self.service = service

    def collect(self, scope: str, deployment_name: str) -> List[RemovalTarget]:
        """Collect removal targets of a deployment.

        Args:
            scope: Deployment scope (resource group, subscription or management group ID)
            deployment_name: Deployment name

        Returns:
            De-duplicated targets, nested deployments last

        Raises:
            ValueError: If the deployment does not exist
        """
        if self.service.get_deployment(scope, deployment_name) is None:
            raise ValueError(f"Deployment '{deployment_name}' not found at {scope}")

        resources: List[RemovalTarget] = []
        deployments: List[RemovalTarget] = []
        self._walk(scope, deployment_name, resources, deployments, set())

        logger.info(
            f"Deployment {deployment_name} created {len(resources)} resources "
            f"and {len(deployments)} nested deployments"
        )
        return resources + deployments

    def _walk(
        self,
        scope: str,
        deployment_name: str,
        resources: List[RemovalTarget],
        deployments: List[RemovalTarget],
        seen: Set[str],
    ) -> None:
        for operation in self.service.list_deployment_operations(scope, deployment_name):
            target_resource = _target_resource(operation)
            if target_resource is None:
                continue

            resource_id = target_resource["id"]
            if resource_id.lower() in seen:
                continue
            seen.add(resource_id.lower())

            resource_type = target_resource.get("resourceType")
            target = RemovalTarget(resource_id, resource_type)

            if (target.resource_type or "").lower() == DEPLOYMENT_TYPE.lower():
                nested_scope = resource_id.rsplit("/providers/", 1)[0]
                self._walk(nested_scope, target.identifier.name, resources, deployments, seen)
                deployments.append(target)
            else:
                resources.append(target)


def _target_resource(operation: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Target resource of a deployment operation, None for operations that touched nothing."""
    properties = operation.get("properties", {})
    if properties.get("provisioningOperation") not in (None, "Create"):
        return None

    target_resource = properties.get("targetResource")
    if not target_resource or not target_resource.get("id"):
        return None
    return target_resource

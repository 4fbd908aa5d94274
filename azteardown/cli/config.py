"""Configuration management for the teardown CLI.

Settings come from built-in defaults, then ``~/.azteardown/config.yaml``
(or an explicit path), then ``AZTEARDOWN_*`` environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..removal.cleaner import DEFAULT_REMOVAL_ORDER
from ..removal.recipes.subscription import DEFAULT_DECOMMISSION_GROUP, DEFAULT_SUBSCRIPTION_MARKER

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".azteardown" / "config.yaml"

ENV_PREFIX = "AZTEARDOWN_"

# Environment variable suffix -> config field
ENV_FIELDS = {
    "TENANT_ID": "tenant_id",
    "LOG_LEVEL": "log_level",
    "AUDIT_PATH": "audit_path",
    "SUBSCRIPTION_MARKER": "subscription_marker",
    "DECOMMISSION_GROUP": "decommission_group",
    "MAX_REMOVAL_CYCLES": "max_removal_cycles",
}

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """CLI configuration.

    Attributes:
        tenant_id: Azure tenant used for credentials (optional)
        log_level: Root log level
        audit_path: Directory for audit logs (optional, default ~/.azteardown/audit-logs)
        subscription_marker: Name marker of test subscriptions that may be decommissioned
        decommission_group: Management group decommissioned subscriptions are moved to
        removal_order: Type prefixes removed first in batch teardowns
        max_removal_cycles: Number of passes over failed targets in batch teardowns
    """

    tenant_id: Optional[str] = None
    log_level: str = "INFO"
    audit_path: Optional[str] = None
    subscription_marker: str = DEFAULT_SUBSCRIPTION_MARKER
    decommission_group: str = DEFAULT_DECOMMISSION_GROUP
    removal_order: List[str] = field(default_factory=lambda: list(DEFAULT_REMOVAL_ORDER))
    max_removal_cycles: int = 3

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load configuration from file and environment.

        Args:
            path: Config file path (default: ~/.azteardown/config.yaml; a missing default file is ignored)

        Returns:
            Loaded configuration

        Raises:
            FileNotFoundError: If an explicit config path does not exist
            ValueError: If the file is not valid YAML or a value is invalid
        """
        config = cls()

        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        if config_path.exists():
            config._apply(_load_yaml(config_path))
            logger.debug(f"Loaded configuration from {config_path}")
        elif path:
            raise FileNotFoundError(f"Config file not found: {config_path}")

        config._apply(_env_values())
        config.validate()
        return config

    def _apply(self, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            if not hasattr(self, key):
                logger.warning(f"Ignoring unknown configuration key '{key}'")
                continue
            if key == "max_removal_cycles":
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    raise ValueError(f"max_removal_cycles must be an integer, got {value!r}")
            if key == "removal_order" and not isinstance(value, list):
                raise ValueError("removal_order must be a list of resource type prefixes")
            setattr(self, key, value)

    def validate(self) -> bool:
        """Validate configuration values.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any value is invalid
        """
        self.log_level = str(self.log_level).upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level '{self.log_level}', expected one of {', '.join(VALID_LOG_LEVELS)}")

        if self.max_removal_cycles < 1:
            raise ValueError("max_removal_cycles must be at least 1")

        return True


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _env_values() -> Dict[str, Any]:
    values = {}
    for suffix, key in ENV_FIELDS.items():
        value = os.environ.get(ENV_PREFIX + suffix)
        if value is not None:
            values[key] = value
    return values

"""Removal target model: a resource ID paired with the type selecting its recipe."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .resource_id import ResourceIdentifier


@dataclass
class RemovalTarget:
    """Resource scheduled for removal.

    Attributes:
        resource_id: Full ARM resource ID
        resource_type: Resource type; derived from the ID when omitted
    """

    resource_id: str
    resource_type: Optional[str] = field(default=None)

    def __post_init__(self) -> None:
        """Parse the ID and fill in the type."""
        identifier = ResourceIdentifier.parse(self.resource_id)
        self.resource_id = identifier.value
        if not self.resource_type:
            self.resource_type = identifier.resource_type or ""

    @property
    def identifier(self) -> ResourceIdentifier:
        """Parsed resource identifier."""
        return ResourceIdentifier(self.resource_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert target to dictionary for serialization."""
        return {"resource_id": self.resource_id, "resource_type": self.resource_type}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemovalTarget":
        """Create target from dictionary.

        Accepts ``resource_id``/``resource_type`` keys as well as the ARM
        ``id``/``type`` spelling.
        """
        resource_id = data.get("resource_id") or data.get("id")
        if not resource_id:
            raise ValueError(f"Target entry has no resource_id: {data}")
        return cls(resource_id=resource_id, resource_type=data.get("resource_type") or data.get("type"))

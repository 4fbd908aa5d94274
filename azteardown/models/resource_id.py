"""Azure Resource Manager identifier model.

ARM ids are path-structured strings such as
``/subscriptions/<sub>/resourceGroups/<rg>/providers/<namespace>/<type>/<name>``.
Positional segment parsing mirrors the layout: ``split("/")`` keeps the leading
empty segment, so segment 2 is the subscription id and segment 4 the resource
group name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class ResourceIdentifier:
    """Parsed Azure resource identifier.

    Attributes:
        value: Original identifier string
    """

    value: str

    def __post_init__(self) -> None:
        """Validate identifier shape."""
        if not self.value or not self.value.startswith("/"):
            raise ValueError(f"Invalid resource ID (must start with '/'): {self.value!r}")

        if len(self.value.rstrip("/").split("/")) < 3:
            raise ValueError(f"Invalid resource ID (too few segments): {self.value!r}")

    @classmethod
    def parse(cls, value: str) -> "ResourceIdentifier":
        """Create identifier from a raw string, trimming whitespace and trailing slashes."""
        return cls(value.strip().rstrip("/"))

    @property
    def segments(self) -> List[str]:
        """Path segments including the leading empty segment."""
        return self.value.split("/")

    @property
    def subscription_id(self) -> Optional[str]:
        """Subscription ID (segment 2) when the ID is subscription-scoped."""
        segments = self.segments
        if len(segments) > 2 and segments[1].lower() == "subscriptions":
            return segments[2]
        return None

    @property
    def resource_group(self) -> Optional[str]:
        """Resource group name (segment 4) when the ID is resource-group-scoped."""
        segments = self.segments
        if len(segments) > 4 and segments[3].lower() == "resourcegroups":
            return segments[4]
        return None

    @property
    def name(self) -> str:
        """Leaf resource name (final segment)."""
        return self.segments[-1]

    @property
    def resource_type(self) -> Optional[str]:
        """Resource type derived from the segments after the last ``providers`` segment.

        Example:
            ``.../providers/Microsoft.KeyVault/vaults/kv-01/keys/key-01``
            yields ``Microsoft.KeyVault/vaults/keys``.
        """
        segments = self.segments
        provider_index = None
        for index, segment in enumerate(segments):
            if segment.lower() == "providers":
                provider_index = index

        if provider_index is None or provider_index + 2 >= len(segments):
            if self.resource_group and len(segments) == 5:
                return "Microsoft.Resources/resourceGroups"
            if self.subscription_id and len(segments) == 3:
                return "Microsoft.Resources/subscriptions"
            return None

        provider_segments = segments[provider_index + 1 :]
        namespace = provider_segments[0]
        type_names = provider_segments[1::2]
        return "/".join([namespace] + type_names)

    @property
    def namespace(self) -> Optional[str]:
        """Resource provider namespace (e.g. ``Microsoft.Compute``)."""
        resource_type = self.resource_type
        if resource_type is None:
            return None
        return resource_type.split("/")[0]

    @property
    def scope(self) -> str:
        """Scope of an extension resource: the ID with its trailing 4 segments dropped.

        ``<scope>/providers/Microsoft.Authorization/roleAssignments/<guid>`` yields ``<scope>``.
        """
        return "/".join(self.segments[:-4])

    def strip_extension(self, extension_type: str) -> "ResourceIdentifier":
        """Return the parent of an extension resource.

        Args:
            extension_type: Extension type, e.g. ``Microsoft.Insights/diagnosticSettings``

        Returns:
            Identifier of the resource the extension is attached to

        Raises:
            ValueError: If the ID does not end with the given extension
        """
        marker = f"/providers/{extension_type}/".lower()
        index = self.value.lower().rfind(marker)
        if index <= 0:
            raise ValueError(f"Resource ID {self.value} is not a {extension_type} extension")
        return ResourceIdentifier(self.value[:index])

    def __str__(self) -> str:
        return self.value

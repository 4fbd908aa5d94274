"""Errors raised by the removal orchestrator."""

from __future__ import annotations

from typing import Optional

from ..azure.errors import ProviderRequestError


class RemovalError(Exception):
    """Removal of a resource failed.

    Wraps the first fatal error a recipe hit together with enough context to
    retry the removal manually.

    Attributes:
        resource_id: Resource being removed
        resource_type: Resource type that selected the recipe
        step: Recipe step that failed
        cause: Underlying exception
    """

    def __init__(self, resource_id: str, resource_type: str, step: str, cause: Exception) -> None:
        self.resource_id = resource_id
        self.resource_type = resource_type
        self.step = step
        self.cause = cause
        super().__init__(f"Failed to remove {resource_type} {resource_id} during '{step}': {cause}")

    @property
    def error_code(self) -> str:
        """Provider error code, or the exception class name for non-provider failures."""
        if isinstance(self.cause, ProviderRequestError):
            return self.cause.error_code
        return type(self.cause).__name__

    @property
    def error_message(self) -> str:
        """Provider error message, or the exception text."""
        if isinstance(self.cause, ProviderRequestError):
            return self.cause.message
        return str(self.cause)

    @property
    def status_code(self) -> Optional[int]:
        """HTTP status of the failed provider request, if any."""
        if isinstance(self.cause, ProviderRequestError):
            return self.cause.status_code
        return None

"""Errors raised by the Azure Resource Manager access layer."""

from __future__ import annotations

from typing import Any, Optional


class ProviderRequestError(Exception):
    """A request to the resource provider returned a non-success status.

    The provider's error code and message are kept verbatim so callers can
    surface them unchanged.

    Attributes:
        status_code: HTTP status code of the response
        error_code: Provider error code (e.g. "ScopeLocked")
        message: Provider error message
        method: HTTP method of the failed request
        path: Request path of the failed request
    """

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        method: Optional[str] = None,
        path: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.method = method
        self.path = path
        request = f" [{method} {path}]" if method and path else ""
        super().__init__(f"{error_code}: {message} (HTTP {status_code}){request}")

    @classmethod
    def from_body(
        cls,
        status_code: int,
        body: Any,
        method: Optional[str] = None,
        path: Optional[str] = None,
    ) -> "ProviderRequestError":
        """Build error from an ARM error response body.

        ARM error bodies look like ``{"error": {"code": "...", "message": "..."}}``;
        some providers omit the wrapper or return plain text.
        """
        error_code = "Unknown"
        message = ""

        if isinstance(body, dict):
            error = body.get("error", body)
            if isinstance(error, dict):
                error_code = error.get("code") or error.get("Code") or error_code
                message = error.get("message") or error.get("Message") or ""
        elif body:
            message = str(body)

        if not message:
            message = f"Request failed with status {status_code}"

        return cls(status_code, error_code, message, method=method, path=path)


class CredentialValidationError(Exception):
    """Azure credentials could not be used to obtain a management token."""

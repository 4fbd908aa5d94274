"""Azure Resource Manager REST client.

Thin wrapper over ``requests`` that authenticates with an Azure credential,
versions every call with an explicit ``api-version`` and follows long-running
operations and paged list responses.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote, urlencode

import requests
from azure.core.credentials import AccessToken, TokenCredential

from ..models.retry_policy import OPERATION_POLICY, RetryPolicy
from ..utils.clock import SystemClock
from ..utils.polling import poll_until
from .errors import ProviderRequestError

logger = logging.getLogger(__name__)

MANAGEMENT_ENDPOINT = "https://management.azure.com"

# Refresh the bearer token when it expires within this many seconds
TOKEN_REFRESH_MARGIN = 300

TERMINAL_OPERATION_STATES = {"succeeded", "failed", "canceled", "cancelled"}


@dataclass
class ArmResponse:
    """Result of a single ARM request.

    Attributes:
        status_code: HTTP status code
        body: Parsed JSON body (or raw text when the body is not JSON)
        headers: Response headers
        method: HTTP method of the request
        path: Request path
    """

    status_code: int
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    method: Optional[str] = None
    path: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True for any 2xx status."""
        return 200 <= self.status_code < 300

    @property
    def not_found(self) -> bool:
        """True when the provider reports the resource does not exist."""
        return self.status_code == 404

    @property
    def json(self) -> Dict[str, Any]:
        """Body as a dictionary (empty when the body is not a JSON object)."""
        return self.body if isinstance(self.body, dict) else {}

    def raise_for_status(self, allow_not_found: bool = False) -> "ArmResponse":
        """Raise ProviderRequestError for non-2xx responses.

        Args:
            allow_not_found: Treat 404 as success (resource already absent)

        Returns:
            The response itself, for chaining
        """
        if allow_not_found and self.not_found:
            return self
        if not self.ok:
            raise ProviderRequestError.from_body(self.status_code, self.body, method=self.method, path=self.path)
        return self


class ArmClient:
    """Authenticated REST client for management.azure.com."""

    def __init__(
        self,
        credential: TokenCredential,
        endpoint: str = MANAGEMENT_ENDPOINT,
        session: Optional[requests.Session] = None,
        clock: Optional[SystemClock] = None,
        timeout: float = 60.0,
    ) -> None:
        """Initialize ARM client.

        Args:
            credential: Azure credential used to obtain bearer tokens
            endpoint: Management endpoint (sovereign clouds use a different host)
            session: HTTP session (optional, created when omitted)
            clock: Clock used for operation polling (default: system clock)
            timeout: Per-request timeout in seconds
        """
        self.credential = credential
        self.endpoint = endpoint.rstrip("/")
        self.session = session or requests.Session()
        self.clock = clock or SystemClock()
        self.timeout = timeout
        self._token: Optional[AccessToken] = None

    def request(
        self,
        method: str,
        path: str,
        api_version: Optional[str] = None,
        body: Optional[Any] = None,
        query: Optional[Dict[str, Any]] = None,
    ) -> ArmResponse:
        """Issue a single request and return the response without raising on status.

        Args:
            method: HTTP verb (GET, PUT, PATCH, POST, DELETE)
            path: Resource path (``/subscriptions/...``) or absolute URL; may carry a query string
            api_version: API version appended as ``api-version`` (optional when the path has one)
            body: JSON payload (optional)
            query: Extra query parameters (optional)

        Returns:
            ArmResponse with parsed body
        """
        url = self._build_url(path, api_version, query)
        headers = {
            "Authorization": f"Bearer {self._get_token()}",
            "Content-Type": "application/json",
        }

        logger.debug(f"{method} {url}")
        response = self.session.request(method, url, headers=headers, json=body, timeout=self.timeout)

        try:
            parsed: Any = response.json() if response.content else None
        except ValueError:
            parsed = response.text

        return ArmResponse(
            status_code=response.status_code,
            body=parsed,
            headers=response.headers,
            method=method,
            path=path,
        )

    def wait_for_operation(self, response: ArmResponse, policy: RetryPolicy = OPERATION_POLICY) -> ArmResponse:
        """Follow a long-running operation until it reaches a terminal state.

        Responses without an ``Azure-AsyncOperation`` or ``Location`` header are
        returned unchanged.

        Args:
            response: Initial 201/202 response of a mutation
            policy: Poll interval and attempt ceiling

        Returns:
            Final operation status response

        Raises:
            ProviderRequestError: If the operation reports failure
            PollTimeoutError: If the operation does not finish within the policy
        """
        if response.status_code not in (201, 202):
            return response

        status_url = response.headers.get("Azure-AsyncOperation") or response.headers.get("Location")
        if not status_url:
            return response

        def check() -> Optional[ArmResponse]:
            status = self.request("GET", status_url)
            if status.status_code == 202:
                return None
            if status.not_found:
                return status
            status.raise_for_status()

            state = _operation_state(status.json)
            if state is None or state.lower() in TERMINAL_OPERATION_STATES:
                return status
            return None

        final = poll_until(check, policy, self.clock, description=f"operation {response.method} {response.path}")

        state = _operation_state(final.json)
        if state and state.lower() != "succeeded":
            error = final.json.get("error") or {}
            raise ProviderRequestError(
                final.status_code,
                error.get("code") or f"Operation{state}",
                error.get("message") or f"Long-running operation finished with status {state}",
                method=response.method,
                path=response.path,
            )
        return final

    def list_all(
        self,
        path: str,
        api_version: Optional[str] = None,
        query: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """GET a collection, following ``nextLink`` pages.

        Raises:
            ProviderRequestError: On non-2xx responses
        """
        items: List[Dict[str, Any]] = []
        response = self.request("GET", path, api_version, query=query).raise_for_status()

        while True:
            items.extend(response.json.get("value", []))
            next_link = response.json.get("nextLink")
            if not next_link:
                return items
            response = self.request("GET", next_link).raise_for_status()

    def _build_url(self, path: str, api_version: Optional[str], query: Optional[Dict[str, Any]]) -> str:
        """Build absolute request URL from path, api-version and query parameters."""
        url = path if path.startswith("http") else f"{self.endpoint}{path}"

        params: Dict[str, Any] = {}
        if api_version and "api-version=" not in url:
            params["api-version"] = api_version
        if query:
            params.update(query)

        if params:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(params, quote_via=quote)}"
        return url

    def _get_token(self) -> str:
        """Return a bearer token, refreshing it shortly before expiry."""
        if self._token is None or self._token.expires_on - TOKEN_REFRESH_MARGIN <= time.time():
            self._token = self.credential.get_token(f"{self.endpoint}/.default")
        return self._token.token


def _operation_state(body: Dict[str, Any]) -> Optional[str]:
    """Extract the status of an operation status body."""
    return body.get("status") or body.get("properties", {}).get("provisioningState")

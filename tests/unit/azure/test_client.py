"""Tests for the ARM REST client."""

from __future__ import annotations

import time
from typing import Any, Dict, Optional
from unittest.mock import Mock

import pytest
from azure.core.credentials import AccessToken

from azteardown.azure.client import ArmClient, ArmResponse
from azteardown.azure.errors import ProviderRequestError
from azteardown.models.retry_policy import RetryPolicy
from azteardown.utils.polling import PollTimeoutError
from tests.fixtures.azure import FakeClock


def http_response(status_code: int = 200, body: Any = None, headers: Optional[Dict[str, str]] = None) -> Mock:
    """Build a mock requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    if body is None:
        response.content = b""
    elif isinstance(body, str):
        response.content = body.encode()
        response.text = body
        response.json.side_effect = ValueError("not json")
    else:
        response.content = b"{...}"
        response.json.return_value = body
    return response


class TestArmClient:
    """Test suite for ArmClient."""

    @pytest.fixture
    def credential(self) -> Mock:
        credential = Mock()
        credential.get_token.return_value = AccessToken("token-1", int(time.time()) + 3600)
        return credential

    @pytest.fixture
    def session(self) -> Mock:
        return Mock()

    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def client(self, credential: Mock, session: Mock, clock: FakeClock) -> ArmClient:
        return ArmClient(credential, session=session, clock=clock)

    def test_request_builds_versioned_url(self, client: ArmClient, session: Mock) -> None:
        """Test path, api-version and query end up in the URL."""
        session.request.return_value = http_response(200, {"id": "/x"})

        response = client.request("DELETE", "/subscriptions/s/resourceGroups/rg", "2021-04-01", query={"force": "true"})

        args, kwargs = session.request.call_args
        assert args[0] == "DELETE"
        assert args[1] == "https://management.azure.com/subscriptions/s/resourceGroups/rg?api-version=2021-04-01&force=true"
        assert kwargs["headers"]["Authorization"] == "Bearer token-1"
        assert response.ok
        assert response.json == {"id": "/x"}

    def test_request_keeps_existing_api_version(self, client: ArmClient, session: Mock) -> None:
        """Test absolute URLs that already carry an api-version are used as-is."""
        session.request.return_value = http_response(200, {})
        url = "https://management.azure.com/operations/op-1?api-version=2022-01-01"

        client.request("GET", url, "2021-04-01")

        assert session.request.call_args[0][1] == url

    def test_request_does_not_raise_for_status(self, client: ArmClient, session: Mock) -> None:
        """Test error statuses are returned, not raised."""
        session.request.return_value = http_response(404, {"error": {"code": "ResourceNotFound", "message": "gone"}})

        response = client.request("GET", "/subscriptions/s", "2022-12-01")

        assert response.not_found
        assert not response.ok

    def test_non_json_body_kept_as_text(self, client: ArmClient, session: Mock) -> None:
        """Test plain-text bodies are preserved."""
        session.request.return_value = http_response(500, "Internal error")

        response = client.request("GET", "/subscriptions/s", "2022-12-01")

        assert response.body == "Internal error"
        assert response.json == {}

    def test_token_reused_until_near_expiry(self, client: ArmClient, session: Mock, credential: Mock) -> None:
        """Test the bearer token is cached between requests."""
        session.request.return_value = http_response(200, {})

        client.request("GET", "/a", "v")
        client.request("GET", "/b", "v")

        assert credential.get_token.call_count == 1

    def test_token_refreshed_near_expiry(self, client: ArmClient, session: Mock, credential: Mock) -> None:
        """Test a token expiring within the refresh margin is replaced."""
        credential.get_token.side_effect = [
            AccessToken("old", int(time.time()) + 60),
            AccessToken("new", int(time.time()) + 3600),
        ]
        session.request.return_value = http_response(200, {})

        client.request("GET", "/a", "v")
        client.request("GET", "/b", "v")

        assert session.request.call_args[1]["headers"]["Authorization"] == "Bearer new"

    def test_list_all_follows_next_link(self, client: ArmClient, session: Mock) -> None:
        """Test paged collections are concatenated."""
        session.request.side_effect = [
            http_response(200, {"value": [{"id": "1"}], "nextLink": "https://management.azure.com/next?page=2"}),
            http_response(200, {"value": [{"id": "2"}]}),
        ]

        items = client.list_all("/subscriptions/s/resources", "2021-04-01")

        assert [i["id"] for i in items] == ["1", "2"]
        assert session.request.call_args_list[1][0][1] == "https://management.azure.com/next?page=2"

    def test_list_all_raises_on_error(self, client: ArmClient, session: Mock) -> None:
        """Test a failing list surfaces the provider error."""
        session.request.return_value = http_response(403, {"error": {"code": "AuthorizationFailed", "message": "no"}})

        with pytest.raises(ProviderRequestError) as exc_info:
            client.list_all("/subscriptions/s/resources", "2021-04-01")

        assert exc_info.value.error_code == "AuthorizationFailed"
        assert exc_info.value.status_code == 403

    def test_wait_for_operation_ignores_synchronous_responses(self, client: ArmClient, session: Mock) -> None:
        """Test 200/204 responses need no polling."""
        response = ArmResponse(200, {})

        assert client.wait_for_operation(response) is response
        session.request.assert_not_called()

    def test_wait_for_operation_polls_until_succeeded(
        self, client: ArmClient, session: Mock, clock: FakeClock
    ) -> None:
        """Test Azure-AsyncOperation is polled until a terminal status."""
        initial = ArmResponse(202, None, {"Azure-AsyncOperation": "https://management.azure.com/op/1"}, "DELETE", "/x")
        session.request.side_effect = [
            http_response(200, {"status": "InProgress"}),
            http_response(200, {"status": "Succeeded"}),
        ]

        final = client.wait_for_operation(initial, RetryPolicy(interval_seconds=5, max_attempts=10))

        assert final.json["status"] == "Succeeded"
        assert clock.sleeps == [5]

    def test_wait_for_operation_location_202_keeps_polling(
        self, client: ArmClient, session: Mock, clock: FakeClock
    ) -> None:
        """Test Location polling treats 202 as still running and 200 as done."""
        initial = ArmResponse(202, None, {"Location": "https://management.azure.com/op/2"}, "DELETE", "/x")
        session.request.side_effect = [http_response(202), http_response(202), http_response(200)]

        final = client.wait_for_operation(initial, RetryPolicy(interval_seconds=1, max_attempts=5))

        assert final.status_code == 200
        assert len(clock.sleeps) == 2

    def test_wait_for_operation_failure_raises(self, client: ArmClient, session: Mock) -> None:
        """Test failed operations raise with the operation's error."""
        initial = ArmResponse(202, None, {"Azure-AsyncOperation": "https://management.azure.com/op/3"}, "DELETE", "/x")
        session.request.return_value = http_response(
            200, {"status": "Failed", "error": {"code": "Conflict", "message": "vault not empty"}}
        )

        with pytest.raises(ProviderRequestError, match="Conflict: vault not empty"):
            client.wait_for_operation(initial)

    def test_wait_for_operation_timeout(self, client: ArmClient, session: Mock) -> None:
        """Test operations that never finish exhaust the policy."""
        initial = ArmResponse(202, None, {"Location": "https://management.azure.com/op/4"}, "DELETE", "/x")
        session.request.return_value = http_response(202)

        with pytest.raises(PollTimeoutError):
            client.wait_for_operation(initial, RetryPolicy(interval_seconds=1, max_attempts=3))


class TestArmResponse:
    """Test suite for ArmResponse."""

    def test_raise_for_status_embeds_provider_error(self) -> None:
        """Test code and message are kept verbatim."""
        response = ArmResponse(
            409,
            {"error": {"code": "ScopeLocked", "message": "The scope is locked."}},
            method="DELETE",
            path="/subscriptions/s/resourceGroups/rg",
        )

        with pytest.raises(ProviderRequestError) as exc_info:
            response.raise_for_status()

        error = exc_info.value
        assert error.error_code == "ScopeLocked"
        assert error.message == "The scope is locked."
        assert str(error) == "ScopeLocked: The scope is locked. (HTTP 409) [DELETE /subscriptions/s/resourceGroups/rg]"

    def test_raise_for_status_allows_not_found(self) -> None:
        """Test 404 passes when the resource is expected to be absent."""
        response = ArmResponse(404, {"error": {"code": "ResourceNotFound", "message": "gone"}})

        assert response.raise_for_status(allow_not_found=True) is response
        with pytest.raises(ProviderRequestError):
            response.raise_for_status()

    def test_error_without_envelope(self) -> None:
        """Test bodies without an error envelope still produce a message."""
        error = ProviderRequestError.from_body(500, None)

        assert error.error_code == "Unknown"
        assert error.message == "Request failed with status 500"

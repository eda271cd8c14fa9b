"""
Tests for RequestExecutor and error normalization.

Architecture:
- Uses pytest-httpx for HTTP mocking
- Every failure must surface as one ApiError with a displayable message
"""

import httpx
import pytest
from pytest_httpx import HTTPXMock

from finance_client.config import PRODUCTION_BASE_URL, ApiSettings
from finance_client.models.auth import ProfileResponse
from finance_client.services.api import (
    ApiError,
    BackendHealthMonitor,
    DeserializationError,
    ErrorKind,
    RequestExecutor,
    RequestOptions,
    TransportError,
    UnauthorizedError,
    clean_params,
    normalize_error_message,
)

from tests.conftest import APP_KEY, BASE_URL, USER_PAYLOAD


# =============================================================================
# Message normalization
# =============================================================================


class TestNormalizeErrorMessage:
    """Tests for normalize_error_message()."""

    def test_plain_message(self):
        """Test that a `message` string is used as-is."""
        assert normalize_error_message({"message": "Invalid credentials"}, 401) == "Invalid credentials"

    def test_error_field_fallback(self):
        """Test that `error` is used when `message` is missing."""
        assert normalize_error_message({"error": "Not Found"}, 404) == "Not Found"

    def test_constraint_array_joined_in_order(self):
        """Test that validation errors are newline-joined in input order."""
        data = {
            "message": [
                {"property": "email", "constraints": {"isEmail": "email must be an email"}},
                "password is too short",
                {
                    "property": "name",
                    "constraints": {
                        "isString": "name must be a string",
                        "isNotEmpty": "name should not be empty",
                    },
                },
            ]
        }
        assert normalize_error_message(data, 400) == (
            "email must be an email\n"
            "password is too short\n"
            "name must be a string, name should not be empty"
        )

    def test_property_without_constraints(self):
        """Test the rendering of an item naming only a property."""
        data = {"message": [{"property": "pin"}]}
        assert normalize_error_message(data, 400) == "pin: "

    def test_string_body(self):
        """Test that a plain text body is used directly."""
        assert normalize_error_message("  Bad Gateway \n", 502) == "Bad Gateway"

    def test_generic_fallback(self):
        """Test the message when nothing useful is in the body."""
        assert normalize_error_message(None, 500) == "Request failed with status 500"
        assert normalize_error_message({}, 418) == "Request failed with status 418"


class TestCleanParams:
    """Tests for query parameter cleaning."""

    def test_drops_empty_values(self):
        """Test that None and empty strings are not sent."""
        assert clean_params({"a": None, "b": "", "c": 0, "d": "x"}) == {"c": "0", "d": "x"}

    def test_enums_and_bools(self):
        """Test enum values and lowercase booleans."""
        from finance_client.models.finance import TransactionType

        assert clean_params({"type": TransactionType.INCOME, "flag": True}) == {
            "type": "income",
            "flag": "true",
        }


# =============================================================================
# Request building
# =============================================================================


class TestHeaders:
    """Tests for request headers."""

    @pytest.mark.asyncio
    async def test_authorization_present_with_token(self, executor, httpx_mock: HTTPXMock):
        """Test that a token becomes a Bearer header next to the app key."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/auth/me",
            json={"user": USER_PAYLOAD},
            match_headers={
                "Authorization": "Bearer T1",
                "X-Runa-App-Key": APP_KEY,
                "Accept": "application/json",
            },
        )

        result = await executor.execute("/auth/me", token="T1", response_type=ProfileResponse)

        assert result.user.email == "anna@example.com"

    @pytest.mark.asyncio
    async def test_authorization_absent_without_token(self, executor, httpx_mock: HTTPXMock):
        """Test that no Authorization header is sent without a token."""
        httpx_mock.add_response(method="GET", url=f"{BASE_URL}/health", json={"status": "ok"})

        await executor.execute("/health")

        request = httpx_mock.get_requests()[0]
        assert "Authorization" not in request.headers
        assert "Content-Type" not in request.headers
        assert request.headers["X-Runa-App-Key"] == APP_KEY

    @pytest.mark.asyncio
    async def test_body_sent_as_json(self, executor, httpx_mock: HTTPXMock):
        """Test that a body is JSON encoded with a matching content type."""
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/pin/verify",
            json={"message": "ok", "pinLength": 4, "biometricEnabled": False},
            match_json={"pin": "1234"},
        )

        await executor.execute(
            "/pin/verify",
            RequestOptions(method="POST", body={"pin": "1234"}),
            token="T1",
        )

        request = httpx_mock.get_requests()[0]
        assert request.headers["Content-Type"] == "application/json"


# =============================================================================
# Response classification
# =============================================================================


class TestResponses:
    """Tests for the classification of responses."""

    @pytest.mark.asyncio
    async def test_validation_error_message(self, executor, httpx_mock: HTTPXMock):
        """Test that an isEmail constraint becomes the exact message."""
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/auth/register",
            status_code=422,
            json={
                "message": [
                    {"property": "email", "constraints": {"isEmail": "email must be an email"}}
                ]
            },
        )

        with pytest.raises(ApiError) as exc_info:
            await executor.execute(
                "/auth/register",
                RequestOptions(method="POST", body={"email": "nope"}),
            )

        assert exc_info.value.message == "email must be an email"
        assert str(exc_info.value) == "email must be an email"
        assert exc_info.value.status_code == 422
        assert exc_info.value.kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_401_raises_unauthorized(self, executor, httpx_mock: HTTPXMock):
        """Test that HTTP 401 is classified as UnauthorizedError."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/goals",
            status_code=401,
            json={"message": "Unauthorized"},
        )

        with pytest.raises(UnauthorizedError) as exc_info:
            await executor.execute("/goals", token="T1")

        assert exc_info.value.status_code == 401
        assert exc_info.value.is_auth_error

    @pytest.mark.asyncio
    async def test_plain_text_error_body(self, executor, httpx_mock: HTTPXMock):
        """Test that a non-JSON error body never raises a parse error."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/goals",
            status_code=502,
            text="Bad Gateway",
        )

        with pytest.raises(ApiError) as exc_info:
            await executor.execute("/goals")

        assert exc_info.value.message == "Bad Gateway"
        assert exc_info.value.kind == ErrorKind.SERVER
        assert exc_info.value.payload == {"message": "Bad Gateway"}

    @pytest.mark.asyncio
    async def test_broken_json_error_body(self, executor, httpx_mock: HTTPXMock):
        """Test that an error body declared as JSON but unparsable is wrapped."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/goals",
            status_code=500,
            content=b"<html>oops</html>",
            headers={"Content-Type": "application/json"},
        )

        with pytest.raises(ApiError) as exc_info:
            await executor.execute("/goals")

        assert exc_info.value.message == "<html>oops</html>"

    @pytest.mark.asyncio
    async def test_plain_text_success_body(self, executor, httpx_mock: HTTPXMock):
        """Test that plain text success bodies are wrapped as a message."""
        httpx_mock.add_response(method="GET", url=f"{BASE_URL}/health", text="OK")

        assert await executor.execute("/health") == {"message": "OK"}

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self, executor, httpx_mock: HTTPXMock):
        """Test that 204 responses decode to None."""
        httpx_mock.add_response(method="DELETE", url=f"{BASE_URL}/goals/3", status_code=204)

        result = await executor.execute("/goals/3", RequestOptions(method="DELETE"), token="T1")

        assert result is None

    @pytest.mark.asyncio
    async def test_schema_mismatch_raises_deserialization_error(self, executor, httpx_mock: HTTPXMock):
        """Test that a success body of the wrong shape fails loudly."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/auth/me",
            json={"profile": {}},
        )

        with pytest.raises(DeserializationError) as exc_info:
            await executor.execute("/auth/me", token="T1", response_type=ProfileResponse)

        assert exc_info.value.status_code == 200
        assert exc_info.value.kind == ErrorKind.DESERIALIZATION

    @pytest.mark.asyncio
    async def test_invalid_json_success_raises_deserialization_error(self, executor, httpx_mock: HTTPXMock):
        """Test that a 2xx body declared as JSON but unparsable fails loudly."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/auth/me",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        with pytest.raises(DeserializationError):
            await executor.execute("/auth/me", token="T1", response_type=ProfileResponse)


# =============================================================================
# Transport failures
# =============================================================================


class TestTransportErrors:
    """Tests for requests that get no response."""

    @pytest.mark.asyncio
    async def test_development_guidance(self, executor, httpx_mock: HTTPXMock):
        """Test that the message lists what to check on a dev backend."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with pytest.raises(TransportError) as exc_info:
            await executor.execute("/health")

        message = exc_info.value.message
        assert message.startswith("Could not connect to the server.")
        assert "The backend is running" in message
        assert f"The URL is correct: {BASE_URL}/health" in message
        assert exc_info.value.status_code is None
        assert exc_info.value.kind == ErrorKind.TRANSPORT
        assert exc_info.value.cause == "Connection refused"

    @pytest.mark.asyncio
    async def test_production_guidance(self, httpx_mock: HTTPXMock):
        """Test that production users are pointed at their connection."""
        executor = RequestExecutor(ApiSettings(base_url=PRODUCTION_BASE_URL, app_key=APP_KEY))
        httpx_mock.add_exception(httpx.ConnectError("Name or service not known"))

        try:
            with pytest.raises(TransportError) as exc_info:
                await executor.execute("/health")
        finally:
            await executor.aclose()

        message = exc_info.value.message
        assert "Check your internet connection." in message
        assert "Server: https://api.runafinance.online" in message
        assert "Server: https://api.runafinance.online/api" not in message

    @pytest.mark.asyncio
    async def test_timeout_headline(self, executor, httpx_mock: HTTPXMock):
        """Test that timeouts are told apart from refused connections."""
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with pytest.raises(TransportError) as exc_info:
            await executor.execute("/health")

        assert exc_info.value.message.startswith("The server did not respond in time.")


# =============================================================================
# Backend availability
# =============================================================================


class TestBackendHealthMonitor:
    """Tests for consecutive failure tracking."""

    @pytest.mark.asyncio
    async def test_callback_after_three_failures(self, api_settings, httpx_mock: HTTPXMock):
        """Test that three network failures in a row fire the callback once."""
        calls = []
        monitor = BackendHealthMonitor(
            max_consecutive_failures=3,
            on_unavailable=lambda: calls.append(True),
        )
        executor = RequestExecutor(api_settings, health_monitor=monitor)
        httpx_mock.add_exception(httpx.ConnectError("refused"))
        httpx_mock.add_response(method="GET", url=f"{BASE_URL}/health", status_code=503, text="")
        httpx_mock.add_exception(httpx.ConnectError("refused"))

        try:
            for _ in range(3):
                with pytest.raises(ApiError):
                    await executor.execute("/health")
        finally:
            await executor.aclose()

        assert calls == [True]
        assert monitor.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_failing_unavailable_handler_is_contained(self, api_settings, httpx_mock: HTTPXMock):
        """Test that a broken handler does not replace the transport error."""
        def broken_handler():
            raise RuntimeError("maintenance screen failed")

        monitor = BackendHealthMonitor(max_consecutive_failures=1, on_unavailable=broken_handler)
        executor = RequestExecutor(api_settings, health_monitor=monitor)
        httpx_mock.add_exception(httpx.ConnectError("refused"))

        try:
            with pytest.raises(TransportError):
                await executor.execute("/health")
        finally:
            await executor.aclose()

        assert monitor.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_success_resets_counter(self):
        """Test that a success in between prevents the callback."""
        calls = []
        monitor = BackendHealthMonitor(
            max_consecutive_failures=2,
            on_unavailable=lambda: calls.append(True),
        )

        await monitor.record_failure(TransportError("down"))
        monitor.record_success()
        await monitor.record_failure(TransportError("down"))

        assert calls == []
        assert monitor.consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_client_errors_reset_counter(self):
        """Test that a 4xx proves the backend is reachable."""
        monitor = BackendHealthMonitor(max_consecutive_failures=3)

        await monitor.record_failure(TransportError("down"))
        await monitor.record_failure(ApiError("Not Found", status_code=404))

        assert monitor.consecutive_failures == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

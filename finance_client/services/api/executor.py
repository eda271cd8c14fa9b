"""
Request Executor

Performs exactly one HTTP exchange with the backend and classifies the
outcome:
- Transport failure           -> TransportError with reachability hints
- Non-2xx response            -> ApiError / UnauthorizedError
- 2xx with unexpected shape   -> DeserializationError
- 2xx                         -> the body decoded into the requested type

Retries and token refresh are NOT done here; see RefreshCoordinator and
ApiClient. Request bodies are never logged (they carry passwords).
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Mapping, Optional

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from finance_client.config import ApiSettings
from finance_client.services.api.errors import (
    ApiError,
    DeserializationError,
    TransportError,
    build_http_error,
)
from finance_client.services.api.health import BackendHealthMonitor


@dataclass(frozen=True)
class RequestOptions:
    """Transient description of one request. Never persisted."""

    method: str = "GET"
    body: Optional[Any] = None
    params: Optional[Mapping[str, Any]] = None
    headers: Mapping[str, str] = field(default_factory=dict)


@lru_cache(maxsize=None)
def _type_adapter(response_type: Any) -> TypeAdapter:
    return TypeAdapter(response_type)


def clean_params(params: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Drop query parameters that are None or empty; stringify the rest."""
    if not params:
        return {}
    cleaned = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        if isinstance(value, bool):
            value = "true" if value else "false"
        text = str(value)
        if text:
            cleaned[key] = text
    return cleaned


class RequestExecutor:
    """
    Builds, sends and classifies single HTTP requests.

    One httpx.AsyncClient is shared by all requests of an executor;
    call aclose() when done with it.
    """

    def __init__(
        self,
        settings: ApiSettings,
        health_monitor: Optional[BackendHealthMonitor] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings
        self._base_url = settings.base_url
        self._health = health_monitor or BackendHealthMonitor()
        self._client = http_client or httpx.AsyncClient(
            timeout=settings.request_timeout_seconds
        )
        self._logger = structlog.get_logger(__name__)
        self._warned_missing_app_key = False

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def health_monitor(self) -> BackendHealthMonitor:
        return self._health

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # Request building
    # -------------------------------------------------------------------------

    def build_headers(self, options: RequestOptions, token: Optional[str] = None) -> dict[str, str]:
        """
        Headers for one request.

        Content-Type only when there is a body, the application key
        always, Authorization only when a token is given.
        """
        headers: dict[str, str] = {"Accept": "application/json"}
        if options.body is not None:
            headers["Content-Type"] = "application/json"
        headers.update(options.headers)

        if self._settings.app_key:
            headers[self._settings.app_key_header] = self._settings.app_key
        elif not self._warned_missing_app_key:
            self._warned_missing_app_key = True
            self._logger.warning(
                "app_key_missing",
                header=self._settings.app_key_header,
                hint="Set FINANCE_API_APP_KEY; the backend may reject requests with 401",
            )

        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _transport_error(self, url: str, exc: httpx.RequestError) -> TransportError:
        """Long-form diagnostic for a request that got no response."""
        if isinstance(exc, httpx.TimeoutException):
            headline = "The server did not respond in time."
        else:
            headline = "Could not connect to the server."

        if self._settings.is_production:
            server = self._base_url.removesuffix("/api")
            message = (
                f"{headline}\n"
                f"Check your internet connection.\n"
                f"Server: {server}"
            )
        else:
            message = (
                f"{headline} Make sure that:\n"
                f"1. The backend is running and reachable from this device\n"
                f"2. The URL is correct: {url}\n"
                f"3. On a physical device you use your computer's IP address, not localhost"
            )
        return TransportError(message, cause=str(exc) or type(exc).__name__)

    # -------------------------------------------------------------------------
    # Response handling
    # -------------------------------------------------------------------------

    @staticmethod
    def parse_body(response: httpx.Response) -> Any:
        """
        Parse a response body.

        JSON content types are parsed as JSON. Anything else is parsed
        as JSON on a best-effort basis and otherwise wrapped as
        {"message": text}, because gateways answer with plain text.
        An empty body is None.

        Raises:
            ValueError: If a body declared as JSON is not valid JSON
        """
        text = response.text
        if not text.strip():
            return None

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            return response.json()

        try:
            return response.json()
        except ValueError:
            return {"message": text}

    def _decode(self, data: Any, response_type: Any, status_code: int, endpoint: str) -> Any:
        if response_type is None:
            return data
        try:
            return _type_adapter(response_type).validate_python(data)
        except ValidationError as e:
            self._logger.error(
                "api_response_invalid",
                endpoint=endpoint,
                status_code=status_code,
                error_count=e.error_count(),
            )
            raise DeserializationError(
                f"Unexpected response from the server for {endpoint}",
                status_code=status_code,
                payload=data,
            ) from e

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def execute(
        self,
        endpoint: str,
        options: Optional[RequestOptions] = None,
        token: Optional[str] = None,
        response_type: Any = None,
    ) -> Any:
        """
        Perform one request against `base_url + endpoint`.

        Args:
            endpoint: Path starting with '/'
            options: Method, body, query parameters and extra headers
            token: Bearer token; no Authorization header when None
            response_type: Type the body is decoded into; None returns
                the parsed JSON unchanged

        Raises:
            ApiError: On any failure (see module docstring)
        """
        options = options or RequestOptions()
        url = f"{self._base_url}{endpoint}"
        headers = self.build_headers(options, token)

        self._logger.debug("api_request", method=options.method, endpoint=endpoint)

        try:
            response = await self._client.request(
                options.method,
                url,
                headers=headers,
                params=clean_params(options.params),
                json=options.body,
            )
        except httpx.RequestError as e:
            error = self._transport_error(url, e)
            self._logger.warning(
                "api_transport_error",
                method=options.method,
                endpoint=endpoint,
                error_type=type(e).__name__,
                error=error.cause,
            )
            await self._health.record_failure(error)
            raise error from e

        try:
            data = self.parse_body(response)
        except ValueError as e:
            if response.is_success:
                self._health.record_success()
                raise DeserializationError(
                    "Could not parse the server response",
                    status_code=response.status_code,
                ) from e
            data = {"message": response.text}

        if not response.is_success:
            error = build_http_error(response.status_code, data)
            self._log_http_error(options.method, endpoint, error)
            await self._health.record_failure(error)
            raise error

        self._health.record_success()
        self._logger.debug(
            "api_request_succeeded",
            method=options.method,
            endpoint=endpoint,
            status_code=response.status_code,
        )
        return self._decode(data, response_type, response.status_code, endpoint)

    def _log_http_error(self, method: str, endpoint: str, error: ApiError) -> None:
        # Expired sessions are routine; keep them out of warning-level logs
        log = self._logger.debug if error.is_auth_error else self._logger.warning
        log(
            "api_request_failed",
            method=method,
            endpoint=endpoint,
            status_code=error.status_code,
            kind=error.kind.value,
            error=error.message,
        )

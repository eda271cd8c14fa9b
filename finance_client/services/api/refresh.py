"""
Refresh Coordinator

Turns an authorization failure into a fresh access token.

Flow:
1. A request fails with UnauthorizedError (HTTP 401)
2. The refresh token is read from the credential store
3. The refresh endpoint is called, authenticated with the REFRESH token
4. The new access token (and rotated refresh token, if any) is stored
5. The caller retries its request once with the returned token

Concurrent callers share one in-flight refresh (single-flight): the
first caller starts it, the others await the same task. Callers whose
token is already stale because a refresh just finished get the stored
token back without another network call.

If the refresh token is missing or rejected, the session is over: the
credential bundle is cleared and the invalidation handler fires.
"""

import asyncio
from typing import Callable, Optional
from uuid import UUID

import structlog

from finance_client.audit import AuthAuditLogger
from finance_client.models.auth import RefreshRequest, RefreshResponse
from finance_client.services.api.errors import ApiError, ErrorKind, UnauthorizedError
from finance_client.services.api.executor import RequestExecutor, RequestOptions
from finance_client.services.storage import CredentialStore, CredentialStoreError


class RefreshCoordinator:
    """Single-flight access token refresh."""

    def __init__(
        self,
        store: CredentialStore,
        executor: RequestExecutor,
        refresh_endpoint: str = "/auth/refresh",
        audit_logger: Optional[AuthAuditLogger] = None,
        on_auth_invalidated: Optional[Callable[[], None]] = None,
    ):
        self._store = store
        self._executor = executor
        self._endpoint = refresh_endpoint
        self._audit_logger = audit_logger or AuthAuditLogger()
        self._on_auth_invalidated = on_auth_invalidated
        self._in_flight: Optional[asyncio.Task] = None
        self._logger = structlog.get_logger(__name__)

    @property
    def is_refreshing(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def set_auth_invalidated_handler(self, handler: Optional[Callable[[], None]]) -> None:
        self._on_auth_invalidated = handler

    async def refresh(
        self,
        stale_token: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Return a fresh access token.

        Args:
            stale_token: The access token the server just rejected. If the
                store already holds a different one, it is returned as is.
            correlation_id: ID of the API call that triggered the refresh

        Raises:
            ApiError: If no new token could be obtained
        """
        if self._in_flight is None:
            current = await self._store.get_access_token()
            if current and stale_token and current != stale_token:
                return current

        # No await between the check and the assignment
        if self._in_flight is None:
            task = asyncio.ensure_future(self._run(correlation_id))
            task.add_done_callback(self._clear_in_flight)
            self._in_flight = task
            self._logger.info("token_refresh_started")
        else:
            self._logger.debug("token_refresh_joined")

        return await asyncio.shield(self._in_flight)

    def _clear_in_flight(self, task: asyncio.Task) -> None:
        if self._in_flight is task:
            self._in_flight = None

    async def _run(self, correlation_id: Optional[UUID]) -> str:
        refresh_token = await self._store.get_refresh_token()
        if not refresh_token:
            await self._invalidate("no refresh token stored", correlation_id)
            raise UnauthorizedError("Session expired. Please log in again.")

        try:
            response: RefreshResponse = await self._executor.execute(
                self._endpoint,
                RequestOptions(
                    method="POST",
                    body=RefreshRequest(refresh_token=refresh_token).to_request_body(),
                ),
                token=refresh_token,
                response_type=RefreshResponse,
            )
        except ApiError as e:
            self._logger.warning(
                "token_refresh_failed",
                status_code=e.status_code,
                kind=e.kind.value,
            )
            await self._audit_logger.log_token_refresh_failed(
                e.message, e.status_code, correlation_id
            )
            if e.is_auth_error:
                await self._invalidate("refresh token rejected", correlation_id)
            raise

        try:
            await self._store.set_access_token(response.token)
            if response.refresh_token:
                await self._store.set_refresh_token(response.refresh_token)
        except CredentialStoreError as e:
            raise ApiError(
                "Could not save the refreshed session on this device.",
                kind=ErrorKind.STORAGE,
            ) from e

        self._logger.info("token_refresh_succeeded")
        await self._audit_logger.log_token_refreshed(
            response.refresh_token is not None, correlation_id
        )
        return response.token

    async def _invalidate(self, reason: str, correlation_id: Optional[UUID]) -> None:
        """Expired -> LoggedOut: drop the whole credential bundle."""
        try:
            await self._store.clear()
        except CredentialStoreError as e:
            self._logger.error("session_clear_failed", error=str(e))
        await self._audit_logger.log_session_invalidated(reason, correlation_id)
        if self._on_auth_invalidated:
            try:
                self._on_auth_invalidated()
            except Exception as e:
                self._logger.error("auth_invalidated_handler_failed", error=str(e), exc_info=True)

"""
Audit Logger

Every transition of the authentication state machine is logged:
logins, logouts, token refreshes and session invalidations, plus the
moment the backend is declared unreachable.

The audit logger:
- Only logs locally through structlog (the client has no audit backend)
- Is async so an audit backend can be added without touching callers
- Supports correlation IDs to trace the attempts of one API call
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from finance_client.models.audit import AuthEvent, AuthEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=level.upper())


class AuthAuditLogger:
    """Central audit logging service for authentication events."""

    def __init__(self):
        self._logger = structlog.get_logger("finance_client.audit")

    async def log(self, event: AuthEvent) -> None:
        """Log an audit event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("auth_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("auth_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("auth_event", **log_dict)
        else:
            self._logger.info("auth_event", **log_dict)

    async def log_logged_in(
        self,
        user_id: Any,
        method: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuthEventBuilder.logged_in(user_id, method, correlation_id))

    async def log_registered(
        self,
        user_id: Any,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuthEventBuilder.registered(user_id, correlation_id))

    async def log_logged_out(self) -> None:
        await self.log(AuthEventBuilder.logged_out())

    async def log_token_refreshed(
        self,
        rotated_refresh_token: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuthEventBuilder.token_refreshed(rotated_refresh_token, correlation_id)
        )

    async def log_token_refresh_failed(
        self,
        error_message: str,
        status_code: Optional[int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuthEventBuilder.token_refresh_failed(error_message, status_code, correlation_id)
        )

    async def log_session_invalidated(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuthEventBuilder.session_invalidated(reason, correlation_id))

    async def log_backend_unavailable(
        self,
        consecutive_failures: int,
        last_error: str,
    ) -> None:
        await self.log(
            AuthEventBuilder.backend_unavailable(consecutive_failures, last_error)
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    One ID covers a whole logical API call: the first attempt, the
    token refresh it may trigger, and the retry.
    """
    return uuid4()

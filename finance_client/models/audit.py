"""
Audit Models for Finance Client

Every transition of the authentication state machine is recorded as an
AuthEvent. Together with the correlation id bound to each API call this
makes it possible to reconstruct why a session ended.

Events never carry secrets: no passwords, no tokens.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuthEventType(str, Enum):
    """Types of events we audit."""
    # Session lifecycle
    LOGGED_IN = "logged_in"
    REGISTERED = "registered"
    LOGGED_OUT = "logged_out"

    # Token refresh
    TOKEN_REFRESHED = "token_refreshed"
    TOKEN_REFRESH_FAILED = "token_refresh_failed"
    SESSION_INVALIDATED = "session_invalidated"

    # Backend availability
    BACKEND_UNAVAILABLE = "backend_unavailable"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuthEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )
    event_type: AuthEventType
    severity: AuditSeverity = AuditSeverity.INFO
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID of the API call that caused the event"
    )
    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuthEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuthEventBuilder.logged_in(user_id, correlation_id)
        event = AuthEventBuilder.session_invalidated("refresh token rejected")
    """

    @staticmethod
    def logged_in(
        user_id: Any,
        method: str,
        correlation_id: Optional[UUID] = None
    ) -> AuthEvent:
        return AuthEvent(
            event_type=AuthEventType.LOGGED_IN,
            correlation_id=correlation_id,
            description=f"User logged in via {method}",
            details={"user_id": str(user_id), "method": method},
            is_user_action=True,
        )

    @staticmethod
    def registered(
        user_id: Any,
        correlation_id: Optional[UUID] = None
    ) -> AuthEvent:
        return AuthEvent(
            event_type=AuthEventType.REGISTERED,
            correlation_id=correlation_id,
            description="New user registered",
            details={"user_id": str(user_id)},
            is_user_action=True,
        )

    @staticmethod
    def logged_out() -> AuthEvent:
        return AuthEvent(
            event_type=AuthEventType.LOGGED_OUT,
            description="User logged out, credentials cleared",
            is_user_action=True,
        )

    @staticmethod
    def token_refreshed(
        rotated_refresh_token: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuthEvent:
        return AuthEvent(
            event_type=AuthEventType.TOKEN_REFRESHED,
            correlation_id=correlation_id,
            description="Access token refreshed",
            details={"rotated_refresh_token": rotated_refresh_token},
        )

    @staticmethod
    def token_refresh_failed(
        error_message: str,
        status_code: Optional[int],
        correlation_id: Optional[UUID] = None
    ) -> AuthEvent:
        return AuthEvent(
            event_type=AuthEventType.TOKEN_REFRESH_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Access token refresh failed",
            details={"status_code": status_code},
            error_message=error_message,
        )

    @staticmethod
    def session_invalidated(
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuthEvent:
        return AuthEvent(
            event_type=AuthEventType.SESSION_INVALIDATED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Session invalidated: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def backend_unavailable(
        consecutive_failures: int,
        last_error: str
    ) -> AuthEvent:
        return AuthEvent(
            event_type=AuthEventType.BACKEND_UNAVAILABLE,
            severity=AuditSeverity.ERROR,
            description=f"Backend unreachable after {consecutive_failures} consecutive failures",
            details={"consecutive_failures": consecutive_failures},
            error_message=last_error,
        )

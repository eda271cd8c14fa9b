"""
Backend Availability Monitor

Counts network-class failures (no response, or a 5xx from the server)
in a row. When the count reaches the configured threshold the backend is
declared unavailable once: the counter resets, an audit event is logged
and the registered callback fires, so the UI can show a maintenance
screen. Any success, or any other kind of failure, resets the counter.
"""

from typing import Callable, Optional

import structlog

from finance_client.audit import AuthAuditLogger
from finance_client.services.api.errors import ApiError


class BackendHealthMonitor:
    """Tracks consecutive network failures across all API calls."""

    def __init__(
        self,
        max_consecutive_failures: int = 3,
        audit_logger: Optional[AuthAuditLogger] = None,
        on_unavailable: Optional[Callable[[], None]] = None,
    ):
        self._threshold = max_consecutive_failures
        self._audit_logger = audit_logger
        self._on_unavailable = on_unavailable
        self._consecutive_failures = 0
        self._logger = structlog.get_logger(__name__)

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def set_unavailable_handler(self, handler: Optional[Callable[[], None]]) -> None:
        self._on_unavailable = handler

    def record_success(self) -> None:
        self._consecutive_failures = 0

    async def record_failure(self, error: ApiError) -> None:
        if not error.is_network_error:
            self._consecutive_failures = 0
            return

        self._consecutive_failures += 1
        if self._consecutive_failures < self._threshold:
            return

        failures = self._consecutive_failures
        self._consecutive_failures = 0
        self._logger.error("backend_unavailable", consecutive_failures=failures)
        if self._audit_logger:
            await self._audit_logger.log_backend_unavailable(failures, error.message)
        if self._on_unavailable:
            try:
                self._on_unavailable()
            except Exception as e:
                self._logger.error("backend_unavailable_handler_failed", error=str(e), exc_info=True)

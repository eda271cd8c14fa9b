"""Audit logging package."""

from finance_client.audit.logger import (
    AuthAuditLogger,
    configure_logging,
    create_correlation_id,
)

__all__ = ["AuthAuditLogger", "configure_logging", "create_correlation_id"]

"""
API Services Package

The authenticated HTTP core: normalized errors, the request executor,
backend availability tracking and single-flight token refresh.
"""

from finance_client.services.api.errors import (
    ApiError,
    DeserializationError,
    ErrorKind,
    TransportError,
    UnauthorizedError,
    build_http_error,
    normalize_error_message,
)
from finance_client.services.api.health import BackendHealthMonitor
from finance_client.services.api.executor import (
    RequestExecutor,
    RequestOptions,
    clean_params,
)
from finance_client.services.api.refresh import RefreshCoordinator

__all__ = [
    # Errors
    "ApiError",
    "DeserializationError",
    "ErrorKind",
    "TransportError",
    "UnauthorizedError",
    "build_http_error",
    "normalize_error_message",
    # Components
    "BackendHealthMonitor",
    "RefreshCoordinator",
    "RequestExecutor",
    "RequestOptions",
    "clean_params",
]

"""
Finance Client - Source Package

Async client for the personal-finance backend API used by the mobile app.

DESIGN PRINCIPLES:
1. One owned credential store, injected everywhere it is needed
2. Every failure reaches the UI as exactly one normalized ApiError
3. Authorization failures refresh once, then retry once
4. Responses are decoded into typed models or fail loudly
"""

__version__ = "1.0.0"
__author__ = "Finance Client Team"

from finance_client.client import ApiClient, create_api_client
from finance_client.services.api import (
    ApiError,
    DeserializationError,
    ErrorKind,
    TransportError,
    UnauthorizedError,
)

__all__ = [
    "ApiClient",
    "create_api_client",
    "ApiError",
    "DeserializationError",
    "ErrorKind",
    "TransportError",
    "UnauthorizedError",
]

"""Services package."""

from finance_client.services.api import (
    ApiError,
    BackendHealthMonitor,
    DeserializationError,
    ErrorKind,
    RefreshCoordinator,
    RequestExecutor,
    RequestOptions,
    TransportError,
    UnauthorizedError,
)
from finance_client.services.storage import (
    CredentialStore,
    CredentialStoreError,
    FileKeyValueStorage,
    InMemoryKeyValueStorage,
    KeyValueStorageInterface,
    StorageCorruptedError,
    StorageError,
    StorageUnavailableError,
)

__all__ = [
    # API services
    "ApiError",
    "BackendHealthMonitor",
    "DeserializationError",
    "ErrorKind",
    "RefreshCoordinator",
    "RequestExecutor",
    "RequestOptions",
    "TransportError",
    "UnauthorizedError",
    # Storage services
    "CredentialStore",
    "CredentialStoreError",
    "FileKeyValueStorage",
    "InMemoryKeyValueStorage",
    "KeyValueStorageInterface",
    "StorageCorruptedError",
    "StorageError",
    "StorageUnavailableError",
]

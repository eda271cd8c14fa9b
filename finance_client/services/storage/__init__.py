"""
Storage Services Package

Provides the key/value storage interface, its file and in-memory
implementations, and the credential store built on top of them.
"""

from finance_client.services.storage.interface import (
    CredentialStoreError,
    KeyValueStorageInterface,
    StorageCorruptedError,
    StorageError,
    StorageUnavailableError,
)
from finance_client.services.storage.credential_store import CredentialStore
from finance_client.services.storage.file_storage import FileKeyValueStorage
from finance_client.services.storage.memory_storage import InMemoryKeyValueStorage

__all__ = [
    # Interfaces
    "KeyValueStorageInterface",
    # Exceptions
    "CredentialStoreError",
    "StorageCorruptedError",
    "StorageError",
    "StorageUnavailableError",
    # Implementations
    "CredentialStore",
    "FileKeyValueStorage",
    "InMemoryKeyValueStorage",
]

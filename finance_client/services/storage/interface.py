"""
Abstract Storage Interface

DESIGN DECISION: The credential store talks to a minimal async key/value
interface. This allows us to:
1. Persist credentials to a JSON file on desktop and CI machines
2. Use in-memory storage for testing
3. Plug in a platform keychain later without touching the API client

The interface only offers what the credential store needs. Note that
remove_items() is a single call: implementations must remove all the
given keys or none of them.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for durable string key/value storage.

    Implementations are assumed to serialize individual writes;
    there is no cross-key transaction beyond remove_items().
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """
        Read one value.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """
        Write one value, replacing any previous one.

        Raises:
            StorageError: If the value could not be persisted
        """
        pass

    @abstractmethod
    async def remove_items(self, keys: list[str]) -> None:
        """
        Remove several keys at once. Absent keys are ignored.

        Raises:
            StorageError: If the removal could not be persisted.
                In that case no key has been removed.
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """The storage backend could not be read or written."""
    pass


class StorageCorruptedError(StorageError):
    """The storage backend holds data that cannot be decoded."""
    pass


class CredentialStoreError(StorageError):
    """A credential could not be persisted or cleared."""
    pass

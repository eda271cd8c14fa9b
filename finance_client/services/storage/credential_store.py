"""
Credential Store

Sole owner of the persisted credential bundle: access token, refresh
token and cached user profile, each in its own storage slot.

Read and write failures are treated differently:
- Reads degrade to None. Absence is a normal state (logged out), so a
  storage hiccup just looks like "no credentials".
- Writes raise CredentialStoreError. A token that silently failed to
  save would leave the auth state machine in a state nobody can see.
"""

import json
from typing import Optional

import structlog
from pydantic import ValidationError

from finance_client.models.auth import CredentialBundle, UserProfile
from finance_client.services.storage.interface import (
    CredentialStoreError,
    KeyValueStorageInterface,
    StorageError,
)


ACCESS_TOKEN_KEY = "token"
REFRESH_TOKEN_KEY = "refresh_token"
USER_KEY = "user"


class CredentialStore:
    """
    Async access to the three credential slots.

    One instance is created per client and passed to every component
    that needs credentials; there is no module-level store.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        key_prefix: str = "@runa_finance:",
    ):
        self._storage = storage
        self._access_key = f"{key_prefix}{ACCESS_TOKEN_KEY}"
        self._refresh_key = f"{key_prefix}{REFRESH_TOKEN_KEY}"
        self._user_key = f"{key_prefix}{USER_KEY}"
        self._logger = structlog.get_logger(__name__)

    @property
    def keys(self) -> list[str]:
        return [self._access_key, self._refresh_key, self._user_key]

    # -------------------------------------------------------------------------
    # Reads (never raise)
    # -------------------------------------------------------------------------

    async def _read(self, key: str) -> Optional[str]:
        try:
            return await self._storage.get_item(key)
        except StorageError as e:
            self._logger.warning("credential_read_failed", key=key, error=str(e))
            return None

    async def get_access_token(self) -> Optional[str]:
        return await self._read(self._access_key)

    async def get_refresh_token(self) -> Optional[str]:
        return await self._read(self._refresh_key)

    async def get_user(self) -> Optional[UserProfile]:
        raw = await self._read(self._user_key)
        if not raw:
            return None
        try:
            return UserProfile.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            self._logger.warning("cached_user_invalid", error=str(e))
            return None

    async def has_credentials(self) -> bool:
        return await self.get_access_token() is not None

    # -------------------------------------------------------------------------
    # Writes (raise CredentialStoreError)
    # -------------------------------------------------------------------------

    async def _write(self, key: str, value: str) -> None:
        try:
            await self._storage.set_item(key, value)
        except StorageError as e:
            self._logger.error("credential_write_failed", key=key, error=str(e))
            raise CredentialStoreError(f"Failed to persist {key}: {e}") from e

    async def set_access_token(self, token: str) -> None:
        await self._write(self._access_key, token)

    async def set_refresh_token(self, token: str) -> None:
        await self._write(self._refresh_key, token)

    async def set_user(self, user: UserProfile) -> None:
        await self._write(self._user_key, user.model_dump_json(by_alias=True))

    async def save_bundle(self, bundle: CredentialBundle) -> None:
        """
        Persist a full credential bundle.

        A bundle without a refresh token drops any stored one, so tokens
        from two different sessions are never mixed.
        """
        await self.set_access_token(bundle.access_token)
        if bundle.refresh_token:
            await self.set_refresh_token(bundle.refresh_token)
        else:
            await self._remove([self._refresh_key])
        if bundle.user is not None:
            await self.set_user(bundle.user)

    async def _remove(self, keys: list[str]) -> None:
        try:
            await self._storage.remove_items(keys)
        except StorageError as e:
            self._logger.error("credential_clear_failed", keys=keys, error=str(e))
            raise CredentialStoreError(f"Failed to remove credentials: {e}") from e

    async def clear(self) -> None:
        """Remove all three slots in one backend call. Idempotent."""
        await self._remove(self.keys)

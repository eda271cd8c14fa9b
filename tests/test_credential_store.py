"""
Tests for credential persistence.

Covers the file and in-memory key/value backends and the CredentialStore
read/write contract: reads degrade to None, writes raise.
"""

import json

import pytest

from finance_client.models.auth import CredentialBundle, UserProfile
from finance_client.services.storage import (
    CredentialStore,
    CredentialStoreError,
    FileKeyValueStorage,
    InMemoryKeyValueStorage,
    StorageCorruptedError,
)

from tests.conftest import PREFIX, USER_PAYLOAD, FailingStorage


def _user() -> UserProfile:
    return UserProfile.model_validate(USER_PAYLOAD)


class TestFileStorage:
    """Tests for the JSON file backend."""

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        """Test that reading before any write returns None."""
        storage = FileKeyValueStorage(tmp_path / "creds.json")
        assert await storage.get_item("token") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, tmp_path):
        """Test that a written value survives a new storage instance."""
        path = tmp_path / "nested" / "creds.json"
        await FileKeyValueStorage(path).set_item("token", "T1")

        assert await FileKeyValueStorage(path).get_item("token") == "T1"
        assert json.loads(path.read_text()) == {"token": "T1"}

    @pytest.mark.asyncio
    async def test_write_leaves_no_temp_files(self, tmp_path):
        """Test that the atomic write cleans up after itself."""
        storage = FileKeyValueStorage(tmp_path / "creds.json")
        await storage.set_item("a", "1")
        await storage.set_item("b", "2")
        assert [p.name for p in tmp_path.iterdir()] == ["creds.json"]

    @pytest.mark.asyncio
    async def test_remove_items_removes_all_given_keys(self, tmp_path):
        """Test multi-key removal and that absent keys are ignored."""
        storage = FileKeyValueStorage(tmp_path / "creds.json")
        await storage.set_item("a", "1")
        await storage.set_item("b", "2")
        await storage.set_item("keep", "3")

        await storage.remove_items(["a", "b", "missing"])

        assert await storage.get_item("a") is None
        assert await storage.get_item("b") is None
        assert await storage.get_item("keep") == "3"

    @pytest.mark.asyncio
    async def test_corrupted_file_raises(self, tmp_path):
        """Test that invalid JSON is reported as corruption."""
        path = tmp_path / "creds.json"
        path.write_text("{not json")
        with pytest.raises(StorageCorruptedError):
            await FileKeyValueStorage(path).get_item("token")

    @pytest.mark.asyncio
    async def test_invalid_utf8_file_raises_corrupted(self, tmp_path):
        """Test that undecodable bytes are reported as corruption."""
        path = tmp_path / "creds.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(StorageCorruptedError):
            await FileKeyValueStorage(path).get_item("token")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [b"{not json", b"[1, 2]", b"\xff\xfe\x00garbage"])
    async def test_write_replaces_corrupted_file(self, tmp_path, content):
        """Test that a write recovers a file that cannot be read."""
        path = tmp_path / "creds.json"
        path.write_bytes(content)
        storage = FileKeyValueStorage(path)

        await storage.set_item("token", "T1")

        assert await storage.get_item("token") == "T1"
        assert json.loads(path.read_text()) == {"token": "T1"}

    @pytest.mark.asyncio
    async def test_remove_items_resets_corrupted_file(self, tmp_path):
        """Test that removal leaves a readable, empty store behind."""
        path = tmp_path / "creds.json"
        path.write_text("{not json")
        storage = FileKeyValueStorage(path)

        await storage.remove_items(["token"])

        assert await storage.get_item("token") is None
        assert json.loads(path.read_text()) == {}

    @pytest.mark.asyncio
    async def test_non_object_file_raises(self, tmp_path):
        """Test that a JSON array is not accepted as a store."""
        path = tmp_path / "creds.json"
        path.write_text("[1, 2]")
        with pytest.raises(StorageCorruptedError):
            await FileKeyValueStorage(path).get_item("token")


class TestCredentialStore:
    """Tests for CredentialStore."""

    @pytest.mark.asyncio
    async def test_keys_use_prefix(self):
        """Test the persisted key names."""
        store = CredentialStore(InMemoryKeyValueStorage(), key_prefix=PREFIX)
        assert store.keys == [
            "@runa_finance:token",
            "@runa_finance:refresh_token",
            "@runa_finance:user",
        ]

    @pytest.mark.asyncio
    async def test_save_bundle_persists_all_slots(self):
        """Test that a full bundle lands in three slots."""
        storage = InMemoryKeyValueStorage()
        store = CredentialStore(storage, key_prefix=PREFIX)

        await store.save_bundle(
            CredentialBundle(access_token="T1", refresh_token="R1", user=_user())
        )

        snapshot = storage.snapshot()
        assert snapshot["@runa_finance:token"] == "T1"
        assert snapshot["@runa_finance:refresh_token"] == "R1"
        assert json.loads(snapshot["@runa_finance:user"])["email"] == "anna@example.com"
        assert await store.get_user() == _user()
        assert await store.has_credentials() is True

    @pytest.mark.asyncio
    async def test_save_bundle_without_refresh_token_drops_old_one(self):
        """Test that refresh tokens from an older session are not kept."""
        storage = InMemoryKeyValueStorage({"@runa_finance:refresh_token": "R0"})
        store = CredentialStore(storage, key_prefix=PREFIX)

        await store.save_bundle(CredentialBundle(access_token="T1"))

        assert await store.get_refresh_token() is None

    @pytest.mark.asyncio
    async def test_clear_is_idempotent(self, tmp_path):
        """Test that clearing twice leaves every slot absent."""
        store = CredentialStore(FileKeyValueStorage(tmp_path / "creds.json"))
        await store.save_bundle(
            CredentialBundle(access_token="T1", refresh_token="R1", user=_user())
        )

        await store.clear()
        await store.clear()

        assert await store.get_access_token() is None
        assert await store.get_refresh_token() is None
        assert await store.get_user() is None
        assert await store.has_credentials() is False

    @pytest.mark.asyncio
    async def test_invalid_cached_user_reads_as_none(self):
        """Test that a malformed cached profile is ignored."""
        storage = InMemoryKeyValueStorage({"@runa_finance:user": "{\"id\": 1}"})
        store = CredentialStore(storage, key_prefix=PREFIX)
        assert await store.get_user() is None

    @pytest.mark.asyncio
    async def test_undecodable_file_reads_as_logged_out(self, tmp_path):
        """Test that a file with invalid bytes degrades to no credentials."""
        path = tmp_path / "creds.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        store = CredentialStore(FileKeyValueStorage(path))

        assert await store.get_access_token() is None
        assert await store.get_user() is None
        assert await store.has_credentials() is False

    @pytest.mark.asyncio
    async def test_clear_and_save_over_corrupted_file(self, tmp_path):
        """Test that logout and a new login both work on a corrupted file."""
        path = tmp_path / "creds.json"
        path.write_text("{not json")
        store = CredentialStore(FileKeyValueStorage(path))

        await store.clear()
        await store.save_bundle(
            CredentialBundle(access_token="T1", refresh_token="R1", user=_user())
        )

        assert await store.get_access_token() == "T1"
        assert await store.get_refresh_token() == "R1"

    @pytest.mark.asyncio
    async def test_read_failure_returns_none(self):
        """Test that an unreadable backend looks like a logged-out state."""
        store = CredentialStore(FailingStorage())
        assert await store.get_access_token() is None
        assert await store.get_refresh_token() is None
        assert await store.get_user() is None
        assert await store.has_credentials() is False

    @pytest.mark.asyncio
    async def test_write_failure_raises(self):
        """Test that a failed write is surfaced to the caller."""
        store = CredentialStore(FailingStorage())
        with pytest.raises(CredentialStoreError):
            await store.set_access_token("T1")
        with pytest.raises(CredentialStoreError):
            await store.clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Shared fixtures for the finance client tests.

HTTP is mocked with pytest-httpx; credentials live in memory unless a
test needs the file backend.
"""

from typing import Optional

import pytest
import pytest_asyncio

from finance_client.client import ApiClient
from finance_client.config import ApiSettings, HealthSettings
from finance_client.services.api import (
    BackendHealthMonitor,
    RefreshCoordinator,
    RequestExecutor,
)
from finance_client.services.storage import (
    CredentialStore,
    InMemoryKeyValueStorage,
    KeyValueStorageInterface,
    StorageUnavailableError,
)


BASE_URL = "https://api.test/api"
APP_KEY = "test-app-key"
PREFIX = "@runa_finance:"

USER_PAYLOAD = {"id": 1, "name": "Anna", "email": "anna@example.com"}


class FailingStorage(KeyValueStorageInterface):
    """Storage whose every operation fails, like a locked keychain."""

    async def get_item(self, key: str) -> Optional[str]:
        raise StorageUnavailableError("storage locked")

    async def set_item(self, key: str, value: str) -> None:
        raise StorageUnavailableError("storage locked")

    async def remove_items(self, keys: list[str]) -> None:
        raise StorageUnavailableError("storage locked")


@pytest.fixture
def api_settings() -> ApiSettings:
    return ApiSettings(base_url=BASE_URL, app_key=APP_KEY)


@pytest.fixture
def health_settings() -> HealthSettings:
    return HealthSettings(
        max_consecutive_failures=3,
        check_attempts=3,
        check_delay_seconds=0.0,
    )


@pytest.fixture
def storage() -> InMemoryKeyValueStorage:
    return InMemoryKeyValueStorage()


@pytest.fixture
def store(storage: InMemoryKeyValueStorage) -> CredentialStore:
    return CredentialStore(storage, key_prefix=PREFIX)


@pytest_asyncio.fixture
async def executor(api_settings: ApiSettings):
    executor = RequestExecutor(api_settings, health_monitor=BackendHealthMonitor())
    yield executor
    await executor.aclose()


@pytest_asyncio.fixture
async def client(
    api_settings: ApiSettings,
    health_settings: HealthSettings,
    store: CredentialStore,
):
    """ApiClient wired like create_api_client(), on in-memory storage."""
    monitor = BackendHealthMonitor(
        max_consecutive_failures=health_settings.max_consecutive_failures,
    )
    executor = RequestExecutor(api_settings, health_monitor=monitor)
    refresher = RefreshCoordinator(store, executor)
    api = ApiClient(executor, store, refresher, health_settings=health_settings)
    yield api
    await api.aclose()


async def seed_session(
    store: CredentialStore,
    access_token: str = "T1",
    refresh_token: Optional[str] = "R1",
) -> None:
    await store.set_access_token(access_token)
    if refresh_token:
        await store.set_refresh_token(refresh_token)

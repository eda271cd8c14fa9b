"""Configuration package."""

from finance_client.config.settings import (
    PRODUCTION_BASE_URL,
    ApiSettings,
    AppSettings,
    HealthSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "PRODUCTION_BASE_URL",
    "ApiSettings",
    "AppSettings",
    "HealthSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]

"""
Configuration Management for Finance Client

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The base URL, the application key and the credential file location are
the only things that differ between a developer machine and production.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PRODUCTION_BASE_URL = "https://api.runafinance.online/api"


class ApiSettings(BaseSettings):
    """Backend API connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_url: str = Field(
        default=PRODUCTION_BASE_URL,
        description="Base URL every endpoint is appended to"
    )
    production_base_url: str = Field(
        default=PRODUCTION_BASE_URL,
        description="Base URL of the production backend"
    )
    app_key: Optional[str] = Field(
        default=None,
        description="Shared application key sent with every request"
    )
    app_key_header: str = Field(
        default="X-Runa-App-Key",
        description="Header carrying the application key"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Timeout for a single HTTP exchange"
    )
    refresh_endpoint: str = Field(
        default="/auth/refresh",
        description="Endpoint exchanging a refresh token for a new access token"
    )

    @field_validator("base_url", "production_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoints start with '/', so the base URL must not end with one."""
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.base_url == self.production_base_url


class StorageSettings(BaseSettings):
    """Credential storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: Path = Field(
        default=Path("~/.finance_client/credentials.json"),
        description="JSON file holding the persisted credential bundle"
    )
    key_prefix: str = Field(
        default="@runa_finance:",
        description="Prefix of the storage keys"
    )

    @field_validator("credentials_path")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return v.expanduser()


class HealthSettings(BaseSettings):
    """Backend availability tracking and health probe configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_HEALTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    max_consecutive_failures: int = Field(
        default=3,
        ge=1,
        description="Network failures in a row before the backend is reported unavailable"
    )
    check_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made by the health probe"
    )
    check_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Pause between health probe attempts"
    )


class AppSettings(BaseSettings):
    """
    Process-wide settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum level of emitted log records"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def api(self) -> ApiSettings:
        return ApiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def health(self) -> HealthSettings:
        return HealthSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries describing each failure. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("api", "storage", "health", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

"""
Centralized configuration management using Pydantic Settings.

Provides:
- Environment variable loading with validation (WAVESPEED_* prefix)
- Secret management with SecretStr for the API key
- Retry, polling and timeout defaults for the client

Configuration Sources (in order of precedence):
1. Arguments passed to the Client (per call, then per client)
2. Environment variables
3. .env file
4. Default values

Usage:
    from wavespeed.infra.settings import get_settings

    settings = get_settings()
    print(settings.BASE_URL)
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_BASE_URL = "https://api.wavespeed.ai"


class Settings(BaseSettings):
    """
    SDK settings loaded from environment variables.

    Field names map to ``WAVESPEED_<FIELD>`` variables.
    The API key uses SecretStr to prevent accidental logging.
    """

    model_config = SettingsConfigDict(
        env_prefix="WAVESPEED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # =========================================================================
    # API
    # =========================================================================

    API_KEY: Optional[SecretStr] = Field(
        default=None,
        description="WaveSpeed API key"
    )
    BASE_URL: str = Field(
        default=DEFAULT_BASE_URL,
        description="API base URL"
    )

    # =========================================================================
    # Timeouts
    # =========================================================================

    CONNECTION_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        description="Connection timeout in seconds"
    )
    TIMEOUT: float = Field(
        default=36000.0,
        gt=0,
        description="Total API call timeout in seconds"
    )

    # =========================================================================
    # Retries and polling
    # =========================================================================

    MAX_RETRIES: int = Field(
        default=0,
        ge=0,
        description="Task-level retries (whole submit + poll restarts)"
    )
    MAX_CONNECTION_RETRIES: int = Field(
        default=5,
        ge=0,
        description="Retries for individual HTTP requests on transport errors"
    )
    RETRY_INTERVAL: float = Field(
        default=1.0,
        ge=0,
        description="Base backoff interval; delay = RETRY_INTERVAL * attempt"
    )
    POLL_INTERVAL: float = Field(
        default=1.0,
        ge=0,
        description="Interval between status checks in seconds"
    )

    # =========================================================================
    # Logging
    # =========================================================================

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    LOG_FORMAT: Literal["json", "console"] = Field(
        default="console",
        description="Log output format"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("BASE_URL", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL so paths can be appended with a single slash."""
        return v.rstrip("/")

    @field_validator("API_KEY", mode="before")
    @classmethod
    def empty_api_key_is_unset(cls, v):
        """Treat an empty WAVESPEED_API_KEY as not configured."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def get_api_key(self) -> Optional[str]:
        """
        Get the unwrapped API key.

        Returns:
            API key string or None if not configured
        """
        if self.API_KEY is None:
            return None
        return self.API_KEY.get_secret_value()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the process.

    Returns:
        Settings instance
    """
    return Settings()


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    Useful for testing or reloading configuration.
    """
    get_settings.cache_clear()

"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Google Gemini (contact extraction)
    GEMINI_API_KEY: SecretStr = SecretStr("")
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_MAX_RETRIES: int = 3  # Additional attempts after a 429
    GEMINI_DEFAULT_RETRY_DELAY_SECONDS: int = 60  # Used when the 429 carries no RetryInfo
    GEMINI_MAX_BACKOFF_SECONDS: int = 300

    # HubSpot OAuth + CRM API
    HUBSPOT_CLIENT_ID: str = ""
    HUBSPOT_CLIENT_SECRET: SecretStr = SecretStr("")
    HUBSPOT_API_BASE_URL: str = "https://api.hubapi.com"
    HUBSPOT_TOKEN_URL: str = "https://api.hubapi.com/oauth/v1/token"
    HUBSPOT_REDIRECT_URI: str = ""
    HUBSPOT_SEARCH_LIMIT: int = 5

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Extraction queue
    EXTRACTION_MAX_ATTEMPTS: int = 3
    EXTRACTION_WORKERS: int = 4
    EXTRACTION_RETRY_BASE_SECONDS: float = 15.0
    EXTRACTION_RETRY_MAX_SECONDS: float = 300.0
    EXTRACTION_HISTORY_SIZE: int = 100  # Finished job records kept for inspection

    # Application Settings
    APP_ENV: Literal["development", "staging", "production"] = "development"

    # Logging
    LOG_FORMAT: Literal["text", "json"] = "text"
    LOG_LEVEL: str = "INFO"

    @field_validator("GEMINI_API_BASE_URL", "HUBSPOT_API_BASE_URL")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate that API base URLs are http(s) and drop trailing slashes."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("API base URLs must start with http:// or https://")
        return v.rstrip("/") if v else v

    @field_validator(
        "GEMINI_MAX_RETRIES",
        "EXTRACTION_MAX_ATTEMPTS",
        "EXTRACTION_WORKERS",
        "EXTRACTION_HISTORY_SIZE",
    )
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Reject negative retry, worker and history counts."""
        if v < 0:
            raise ValueError("retry, worker and history counts must be non-negative")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"

    @property
    def gemini_configured(self) -> bool:
        """Check if a Gemini API key is available."""
        return bool(self.GEMINI_API_KEY.get_secret_value())

    @property
    def hubspot_oauth_configured(self) -> bool:
        """Check if HubSpot OAuth client credentials are available."""
        return bool(self.HUBSPOT_CLIENT_ID and self.HUBSPOT_CLIENT_SECRET.get_secret_value())

    def validate_startup(self, require_hubspot: bool = True) -> None:
        """Validate that all required secrets are configured.

        Args:
            require_hubspot: Also require the HubSpot OAuth client secrets.
                Extraction-only entrypoints pass False.

        Raises:
            ValueError: If any required secret is missing or empty.
        """
        required_secrets = {"GEMINI_API_KEY": self.GEMINI_API_KEY.get_secret_value()}
        if require_hubspot:
            required_secrets["HUBSPOT_CLIENT_ID"] = self.HUBSPOT_CLIENT_ID
            required_secrets["HUBSPOT_CLIENT_SECRET"] = self.HUBSPOT_CLIENT_SECRET.get_secret_value()
        missing = [name for name, value in required_secrets.items() if not value]
        if missing:
            raise ValueError(f"Required secrets are missing or empty: {', '.join(missing)}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Components accept an explicit ``Settings`` and only fall back to this
    when none is given. Startup validation is left to entrypoints so that
    importing the package never requires secrets.

    Returns:
        Settings instance.
    """
    return Settings()

"""Configuration management for taskpulse."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SECRET_KEY = "dev-secret-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Task store
    sqlite_db_path: str = Field(default="./data/taskpulse.db", description="Path to the SQLite task store")
    store_timezone: str = Field(default="UTC", description="Timezone used for calendar-date bucketing of tasks")

    # Redis Configuration (optional)
    redis_url: str | None = Field(default=None, description="Redis connection URL (e.g., redis://localhost:6379)")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Identity
    secret_key: str = Field(default=DEFAULT_SECRET_KEY, description="Key used to sign bearer tokens")
    token_max_age_seconds: int = Field(default=86400, description="Maximum age of a bearer token in seconds")

    # Analytics
    analytics_window_days: int = Field(default=30, ge=1, description="Length of the rolling analytics window in days")

    # Task listing client
    task_api_base_url: str = Field(default="http://127.0.0.1:8000", description="Base URL of the task API")
    listing_cache_ttl_seconds: int = Field(default=300, ge=1, description="Freshness window for cached task pages")
    listing_page_size: int = Field(default=10, ge=1, description="Default page size for task listings")

    is_production: bool = Field(default=False, description="Running in production mode")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # Analytics
    COMPLEXITY_NORMALIZER: float = 5.0  # Maps the 1-10 complexity scale to a multiplier centred on 1.0
    DEFAULT_PROJECTION_TARGET: int = 10

    # Cache
    LISTING_CACHE_KEY_PREFIX: str = "taskpulse:tasks"

    # Pagination
    MAX_PAGE_SIZE: int = 200

    # Redis Configuration
    REDIS_MAX_CONNECTIONS: int = 10


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()

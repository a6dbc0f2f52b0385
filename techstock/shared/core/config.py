from functools import lru_cache
from threading import Lock
from typing import Optional
import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator

# Environment Constants
ENV_PRODUCTION = "production"
ENV_STAGING = "staging"
ENV_DEVELOPMENT = "development"
ENV_LOCAL = "local"

_KNOWN_ENVIRONMENTS = {ENV_PRODUCTION, ENV_STAGING, ENV_DEVELOPMENT, ENV_LOCAL}


@lru_cache
def get_settings() -> "Settings":
    """Returns a singleton instance of the application settings."""
    return Settings()


_settings_reload_lock = Lock()


def reload_settings_from_environment() -> "Settings":
    """
    Atomically rebuild and replace cached settings from environment values.

    This avoids mutating the cached singleton instance in-place.
    """
    logger = structlog.get_logger()
    with _settings_reload_lock:
        logger.info("settings_reload_started")
        get_settings.cache_clear()
        refreshed = get_settings()
        logger.info("settings_reload_completed")
        return refreshed


class Settings(BaseSettings):
    """
    Main configuration for TechStock.
    Uses Pydantic-Settings for environment variable parsing from .env.
    """

    APP_NAME: str = "TechStock"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    # ENVIRONMENT options: local, development, staging, production
    ENVIRONMENT: str = ENV_DEVELOPMENT
    TESTING: bool = False

    # Database
    DATABASE_URL: Optional[str] = None  # Required outside of tests
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_ECHO: bool = False
    DB_SLOW_QUERY_THRESHOLD_SECONDS: float = 0.2
    # Schema migrations are out of scope; local runs may create tables on startup.
    DB_AUTO_CREATE_TABLES: bool = False

    # HTTP
    CORS_ORIGINS: list[str] = []
    REQUEST_TIMEOUT_SECONDS: int = 60

    # Catalog scans (tag index, import lookups) load at most this many rows per call
    FULL_SCAN_LIMIT: int = 100000

    # CSV import
    IMPORT_CSV_PATH: str = "datasets/AzureResourceGraphFormattedResults-Query.csv"
    IMPORT_PROGRESS_EVERY: int = 100

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    @model_validator(mode="after")
    def validate_all_config(self) -> "Settings":
        """Centralized validation, grouped by concern."""
        self.ENVIRONMENT = self.ENVIRONMENT.strip().lower()
        if self.ENVIRONMENT not in _KNOWN_ENVIRONMENTS:
            raise ValueError(
                f"ENVIRONMENT must be one of {sorted(_KNOWN_ENVIRONMENTS)} (got {self.ENVIRONMENT!r})."
            )
        if self.TESTING and self.ENVIRONMENT in {ENV_PRODUCTION, ENV_STAGING}:
            raise ValueError(
                "TESTING must be false in staging/production runtime environments."
            )

        self._validate_database_config()
        self._validate_limits()
        return self

    def _validate_database_config(self) -> None:
        if self.is_production and not self.DATABASE_URL:
            raise ValueError("DATABASE_URL is required in production.")
        if self.DB_POOL_SIZE < 1:
            raise ValueError("DB_POOL_SIZE must be >= 1.")
        if self.DB_MAX_OVERFLOW < 0:
            raise ValueError("DB_MAX_OVERFLOW must be >= 0.")
        if self.DB_SLOW_QUERY_THRESHOLD_SECONDS <= 0:
            raise ValueError("DB_SLOW_QUERY_THRESHOLD_SECONDS must be > 0.")

    def _validate_limits(self) -> None:
        if self.FULL_SCAN_LIMIT < 1:
            raise ValueError("FULL_SCAN_LIMIT must be >= 1.")
        if self.REQUEST_TIMEOUT_SECONDS < 1:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be >= 1.")
        if self.IMPORT_PROGRESS_EVERY < 1:
            raise ValueError("IMPORT_PROGRESS_EVERY must be >= 1.")

    @property
    def is_production(self) -> bool:
        """True only when ENVIRONMENT is explicitly set to 'production'."""
        return self.ENVIRONMENT == ENV_PRODUCTION

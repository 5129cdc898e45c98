"""
Configuration module with strict validation.

Key principles:
- APP STARTUP does NOT require FOURSQUARE_API_KEY or DATABASE_URL
- Building the production venue directory DOES require the key (fails early with clear error)
- The database cache backend DOES require DATABASE_URL
- All timeouts, concurrency and cache settings are configurable
- Safe defaults for all optional settings
"""
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MissingFoursquareAPIKeyError(Exception):
    """Raised when the Foursquare directory is requested without an API key."""
    pass


class MissingDatabaseURLError(Exception):
    """Raised when the database cache backend is selected without DATABASE_URL."""
    pass


CACHE_BACKENDS = {"memory", "database"}


class Settings(BaseSettings):
    """Application settings with validation.

    Loads from environment variables and .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database (REQUIRED only for the database cache backend)
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy connection URL for the durable analysis cache"
    )

    # Foursquare Places API (OPTIONAL for startup, REQUIRED for live analyses)
    foursquare_api_key: Optional[str] = Field(
        default=None,
        description="Foursquare Places API key - venue directory and visit statistics"
    )

    foursquare_base_url: str = Field(
        default="https://api.foursquare.com/v3",
        description="Foursquare Places API base URL"
    )

    # Rate Limiting and Concurrency
    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=50,
        description="Maximum concurrent per-venue statistics lookups"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # Retry Configuration
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum number of retries for failed API requests"
    )

    retry_backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Exponential backoff factor for retries"
    )

    # Analysis cache
    analysis_cache_backend: str = Field(
        default="memory",
        description="Analysis cache adapter: 'memory' or 'database'"
    )

    analysis_cache_ttl_hours: float = Field(
        default=4.0,
        gt=0,
        le=48,
        description="Hours a cached area analysis stays valid after it is written"
    )

    # Timeouts for external calls (seconds)
    directory_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Bound on the venue directory search"
    )

    stats_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Bound on each per-venue visit statistics lookup"
    )

    cache_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Bound on each analysis cache read or write"
    )

    # Venue search defaults
    venue_search_limit: int = Field(
        default=50,
        ge=1,
        le=50,
        description="Maximum venues requested from the directory (Foursquare max is 50)"
    )

    venue_category_filter: str = Field(
        default="13000",
        description="Foursquare category filter (13000 = Food and Dining)"
    )

    default_radius_meters: int = Field(
        default=1000,
        gt=0,
        description="Radius used when a caller does not supply one"
    )

    # Estimation
    jitter_seed: Optional[int] = Field(
        default=None,
        description="Seed for synthesized-traffic jitter; unset means non-reproducible output"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @field_validator("analysis_cache_backend")
    @classmethod
    def validate_cache_backend(cls, v: str) -> str:
        """Validate the cache backend name."""
        v_lower = v.lower()
        if v_lower not in CACHE_BACKENDS:
            raise ValueError(f"analysis_cache_backend must be one of {CACHE_BACKENDS}")
        return v_lower

    def get_foursquare_api_key(self) -> Optional[str]:
        """
        Get Foursquare API key if configured.

        Returns:
            Optional[str]: The API key if configured, None otherwise
        """
        return self.foursquare_api_key

    def require_foursquare_api_key(self) -> str:
        """
        Get Foursquare API key, raising clear error if missing.

        Call this before building the production venue directory.

        Raises:
            MissingFoursquareAPIKeyError: If the key is not configured

        Returns:
            str: The API key
        """
        if not self.foursquare_api_key:
            raise MissingFoursquareAPIKeyError(
                "FOURSQUARE_API_KEY is required for area traffic analysis. "
                "Please set it in your .env file or environment variables. "
                "Get a key at: https://foursquare.com/developers/"
            )
        return self.foursquare_api_key

    def require_database_url(self) -> str:
        """
        Get DATABASE_URL, raising clear error if missing.

        Raises:
            MissingDatabaseURLError: If the URL is not configured
        """
        if not self.database_url:
            raise MissingDatabaseURLError(
                "DATABASE_URL is required when ANALYSIS_CACHE_BACKEND=database. "
                "Set it in your .env file or switch the backend to 'memory'."
            )
        return self.database_url


# Global settings instance
# This can be imported throughout the application
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    This pattern allows:
    - Easy testing (can reset settings between tests)
    - Lazy loading (only loads when first accessed)
    - Singleton pattern (same instance used everywhere)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """
    Reset the global settings instance.

    Useful for testing to ensure clean state between tests.
    """
    global _settings
    _settings = None

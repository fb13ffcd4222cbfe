"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Shopify credentials are optional here so the app can boot without them;
the gateway refuses to start a sync when they are missing.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SHOPIFY
    # ===================
    shopify_shop_name: str = Field(
        default="",
        description="Shop name or full *.myshopify.com domain"
    )
    shopify_access_token: str = Field(
        default="",
        description="Admin API access token"
    )
    shopify_api_version: str = Field(
        default="2023-01",
        description="Admin GraphQL API version"
    )
    shopify_max_retries: int = Field(
        default=5,
        ge=0,
        le=20,
        description="Retries after an HTTP 429 before giving up"
    )
    shopify_retry_base_delay_ms: int = Field(
        default=1000,
        ge=0,
        le=60000,
        description="Linear backoff step; retry N waits N x this value"
    )
    shopify_request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Per-request HTTP timeout"
    )
    default_location_name: str = Field(
        default="",
        description="Fallback location when a row has none and the item's location is ambiguous"
    )

    # ===================
    # SYNC PACING
    # ===================
    sync_batch_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Rows processed concurrently per batch"
    )
    sync_batch_delay_ms: int = Field(
        default=500,
        ge=0,
        le=60000,
        description="Pause between batches"
    )

    # ===================
    # UPLOADS
    # ===================
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Largest accepted spreadsheet upload"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=3000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def shopify_configured(self) -> bool:
        """Check if Shopify credentials are present."""
        return bool(self.shopify_shop_name.strip() and self.shopify_access_token.strip())


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()

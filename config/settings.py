"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


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
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        default="http://localhost:54321",
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        default="",
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # CATALOG
    # ===================
    products_table: str = Field(
        default="products",
        description="Table holding catalog products (sku, primary image, gallery)"
    )
    product_images_table: str = Field(
        default="product_images",
        description="Table holding attachment entities for stored images"
    )
    storefront_url: str = Field(
        default="http://localhost:3000",
        description="Base URL used to build product permalinks"
    )

    # ===================
    # OBJECT STORAGE
    # ===================
    storage_bucket: str = Field(
        default="product-images",
        description="Supabase Storage bucket for uploaded images"
    )
    thumbnail_size: int = Field(
        default=150,
        ge=16,
        le=1024,
        description="Edge length (px) of generated thumbnails"
    )

    # ===================
    # UPLOAD LIMITS
    # ===================
    max_upload_size_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Largest accepted image upload in bytes"
    )
    min_image_width: int = Field(
        default=50,
        ge=1,
        description="Minimum accepted image width in pixels"
    )
    min_image_height: int = Field(
        default=50,
        ge=1,
        description="Minimum accepted image height in pixels"
    )
    upload_chunk_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Files per batch round suggested to clients"
    )
    session_ttl_minutes: int = Field(
        default=60,
        ge=1,
        le=1440,
        description="Lifetime of staged rename/conflict sessions"
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
        default=8000,
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
    def max_upload_size_label(self) -> str:
        """Human readable upload limit, e.g. '10 MB'."""
        return format_size(self.max_upload_size_bytes)


def format_size(num_bytes: int) -> str:
    """
    Format a byte count for messages.

    Examples:
        512 -> '512 B'
        10485760 -> '10 MB'
        1572864 -> '1.5 MB'
    """
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            if unit == "B" or size == int(size):
                return f"{int(size)} {unit}"
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{num_bytes} B"


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

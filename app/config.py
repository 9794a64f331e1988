# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.STORAGE_BUCKET)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# The Settings class validates all values at startup, so a missing Supabase
# key or an out-of-range pipeline setting stops the process before it serves
# a single request.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development

    All settings are accessed via the global `settings` instance, or via
    `get_settings()` when building services at startup.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret used to verify Supabase access tokens"
    )

    # -------------------------------------------------------------------------
    # Storage Configuration
    # -------------------------------------------------------------------------

    STORAGE_BUCKET: str = Field(
        default="bowl-images",
        description="Public bucket holding every image variant"
    )

    STORAGE_PATH_PREFIX: str = Field(
        default="bowls",
        description="First path segment of every stored object"
    )

    STORAGE_MAX_FILE_SIZE_MB: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Per-object size limit enforced by the bucket"
    )

    STORAGE_PUBLIC_BUCKET: bool = Field(
        default=True,
        description="Create the bucket as public so variant URLs resolve without signing"
    )

    STORAGE_CREATE_BUCKET_ON_STARTUP: bool = Field(
        default=False,
        description="Create the bucket at startup if it does not exist"
    )

    # -------------------------------------------------------------------------
    # Image Pipeline Settings
    # -------------------------------------------------------------------------

    MAX_IMAGE_SIZE_MB: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum size of a single uploaded photo in MB"
    )

    ALLOWED_IMAGE_TYPES: str = Field(
        default="image/jpeg,image/jpg,image/png,image/webp,image/gif",
        description="Accepted photo MIME types (comma-separated)"
    )

    IMAGE_PIPELINE_CONCURRENCY: int = Field(
        default=2,
        ge=1,
        le=4,
        description="How many photos of one submission are processed at once (1 = sequential)"
    )

    LINK_FAILURE_ROLLBACK: bool = Field(
        default=True,
        description="Remove uploaded variants when the image row cannot be written"
    )

    ORPHAN_PURGE_INTERVAL_MINUTES: int = Field(
        default=60,
        ge=1,
        description="How often the worker removes blobs recorded as orphaned"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (for Celery)
    # -------------------------------------------------------------------------
    # Default to localhost for development

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    JWKS_CACHE_TTL: int = Field(
        default=3600,
        ge=0,
        description="Seconds a fetched JWKS document is reused before refetching"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        # Load from .env file in project root
        env_file=".env",
        env_file_encoding="utf-8",
        # Don't fail if .env doesn't exist (production sets env vars directly)
        env_ignore_empty=True,
        # Case-sensitive environment variable names
        case_sensitive=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://bowls.app" -> ["http://localhost:3000", "https://bowls.app"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def allowed_image_types_list(self) -> list[str]:
        """
        Parse ALLOWED_IMAGE_TYPES string into a list.

        Example: "image/jpeg, image/png" -> ["image/jpeg", "image/png"]
        """
        return [t.strip().lower() for t in self.ALLOWED_IMAGE_TYPES.split(",") if t.strip()]

    @property
    def max_image_size_bytes(self) -> int:
        """Convert MAX_IMAGE_SIZE_MB to bytes for photo validation."""
        return self.MAX_IMAGE_SIZE_MB * 1024 * 1024

    @property
    def storage_max_file_size_bytes(self) -> int:
        """Convert STORAGE_MAX_FILE_SIZE_MB to bytes for the bucket limit."""
        return self.STORAGE_MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def jwks_url(self) -> str:
        """JWKS endpoint published by Supabase Auth."""
        return f"{self.SUPABASE_URL.rstrip('/')}/auth/v1/.well-known/jwks.json"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()

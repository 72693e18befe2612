"""
Application Configuration Module

Centralizes all application settings using Pydantic Settings.
Environment variables are loaded from .env file automatically.

Usage:
    from config.settings import settings

    print(settings.DATABASE_URL)
    print(settings.CORRECTION_CACHE_TTL_MS)
"""

from pydantic_settings import BaseSettings
from pydantic import Field, ConfigDict
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Variable names are case-insensitive.
    """

    # ==========================================================================
    # Database Configuration
    # ==========================================================================
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./voice_orders.db",
        description="Async SQLAlchemy connection string"
    )

    # ==========================================================================
    # CORS Configuration
    # ==========================================================================
    CORS_ORIGINS: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    @property
    def cors_origins_list(self) -> list:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Emit structured JSON logs instead of colored console output"
    )
    APP_NAME: str = Field(
        default="Voice Order Resolver",
        description="Application name for OpenAPI docs"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # ==========================================================================
    # Correction Store Configuration
    # ==========================================================================
    CORRECTION_CACHE_TTL_MS: int = Field(
        default=30000,
        description="Per-user correction cache lifetime in milliseconds"
    )
    AUTO_LEARN_ENABLED: bool = Field(
        default=False,
        description="Persist automatically inferred corrections as learned corrections"
    )
    AUTO_LEARN_MIN_CONFIDENCE: float = Field(
        default=0.85,
        description="Minimum inference confidence before an automatic correction is stored"
    )
    VARIANT_TABLES_PATH: Optional[str] = Field(
        default=None,
        description="Custom path to brand/dialect variant tables (defaults to bundled JSON)"
    )
    FEEDBACK_LOG_SIZE: int = Field(
        default=100,
        description="Number of feedback samples kept per user"
    )

    # ==========================================================================
    # Matching Configuration
    # ==========================================================================
    RANK_THRESHOLD: float = Field(
        default=0.35,
        description="Minimum combined score for multi-result voice search"
    )
    MATCH_REJECT_THRESHOLD: float = Field(
        default=0.3,
        description="Best-match confidence below which a match is rejected"
    )

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Singleton instance for easy import
settings = get_settings()

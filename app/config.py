"""
Application Configuration
=========================

Centralized configuration using Pydantic Settings.
Loads from environment variables with validation.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: str = Field(default="development")
    LOG_LEVEL: str = Field(default="INFO")

    # Server
    PORT: int = Field(default=8000)

    # Database
    DATABASE_URL: str = Field(default="")

    # Redis (only needed when the webhook event ledger is enabled)
    REDIS_URL: str = Field(default="redis://localhost:6379/0")

    # RevenueCat webhooks
    REVENUECAT_WEBHOOK_SECRET: str = Field(default="")
    REVENUECAT_EVENT_HEADER: str = Field(
        default="X-RevenueCat-Event",
        description="Header RevenueCat attaches to every genuine webhook delivery",
    )
    WEBHOOK_EVENT_DEDUP_ENABLED: bool = Field(
        default=False,
        description="Track processed event ids in Redis and skip repeats",
    )
    WEBHOOK_EVENT_DEDUP_TTL_SECONDS: int = Field(default=86400 * 7)

    # App Configuration
    ALLOWED_ORIGINS: str = Field(default="http://localhost:3000,http://localhost:8000")

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def database_url_async(self) -> str:
        """Convert database URL to async format for asyncpg."""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace(
                "postgresql://", "postgresql+asyncpg://", 1
            )
        return self.DATABASE_URL

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def webhook_configured(self) -> bool:
        """True when the RevenueCat shared secret has been provisioned."""
        return bool(self.REVENUECAT_WEBHOOK_SECRET)

    @field_validator("WEBHOOK_EVENT_DEDUP_TTL_SECONDS")
    @classmethod
    def validate_dedup_ttl(cls, v: int) -> int:
        """Redis rejects non-positive expirations."""
        if v <= 0:
            raise ValueError("WEBHOOK_EVENT_DEDUP_TTL_SECONDS must be positive")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Export a default settings instance
settings = get_settings()

"""
Configuration settings for the UniPool carpooling service.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, Field
from typing import Optional
import logging

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    """Application settings loaded from the environment."""

    # Environment
    ENVIRONMENT: str = Field(default="development", description="Application environment")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "UniPool"

    # Database Settings
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./unipool.db",
        description="Database connection URL"
    )
    DB_ECHO: bool = Field(default=False, description="Echo SQL statements")

    # Ride Settings
    MIN_RIDE_SEATS: int = Field(default=1, ge=1)
    MAX_RIDE_SEATS: int = Field(default=6, ge=1, le=12)

    # Rating Settings
    MIN_RATING: int = 1
    MAX_RATING: int = 5

    # Notifications
    NOTIFICATION_PAGE_SIZE: int = Field(default=50, ge=1, le=500)

    # Logging Settings
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    LOG_FILE: Optional[str] = None

    # Security Headers
    CORS_ORIGINS: list = Field(default=["http://localhost:3000"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="UNIPOOL_",
        case_sensitive=True,
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator('DATABASE_URL')
    @classmethod
    def validate_database_url(cls, v):
        if not v.startswith(('postgresql://', 'postgresql+asyncpg://', 'sqlite+aiosqlite://')):
            raise ValueError("DATABASE_URL must be a PostgreSQL or sqlite+aiosqlite URL")
        return v

    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v):
        allowed_envs = ['development', 'staging', 'production']
        if v not in allowed_envs:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed_envs}")
        return v

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == "development"

# Global settings instance with error handling
try:
    settings = Settings()
    if settings.is_production() and settings.DEBUG:
        logger.warning("DEBUG mode is enabled in production environment")
    if settings.is_production() and settings.DATABASE_URL.startswith("sqlite"):
        logger.warning("SQLite database configured in production environment")
except Exception as e:
    logger.error(f"Failed to load settings: {e}")
    raise

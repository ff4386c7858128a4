"""
Configuration Utility - Environment Variables Management

Centralized configuration loading from .env files using pydantic-settings.
Type-safe access to all environment variables with validation.

Usage:
    from utils.config import settings

    redis_url = settings.REDIS_URL
    tika_url = settings.TIKA_URL
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Redis Configuration
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    REDIS_MAX_CONNECTIONS: int = Field(default=10)

    # Job Stream Configuration
    JOB_STREAM: str = Field(default="pdf-jobs")
    JOB_STREAM_MAXLEN: int | None = Field(default=10000)
    CONSUMER_GROUP: str = Field(default="pdf-consumer-group")
    CONSUMER_NAME: str = Field(default="pdf-consumer-1")
    CONSUMER_BATCH_SIZE: int = Field(default=10, ge=1)
    CONSUMER_BLOCK_MS: int = Field(default=1000, ge=1)
    DLQ_STREAM: str = Field(default="")

    # Tika Configuration
    TIKA_URL: str = Field(default="http://localhost:9998")
    TIKA_TIMEOUT: float = Field(default=60.0)

    # Extraction Configuration
    EXTRACTION_CONCURRENCY: int = Field(default=3, ge=1)

    # Submission Configuration
    SUBMIT_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    SUBMIT_ATTEMPT_TIMEOUT: float = Field(default=30.0)
    SUBMIT_RETRY_DELAY: float = Field(default=2.0, ge=0)
    ALLOWED_EXTENSIONS: list[str] = Field(default=[".pdf"])

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text")

    # Application Metadata
    ENVIRONMENT: str = Field(default="production")
    APP_NAME: str = Field(default="book-looker")
    APP_VERSION: str = Field(default="0.1.0")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Singleton Settings instance
    """
    return Settings()


# Global settings instance
settings = get_settings()

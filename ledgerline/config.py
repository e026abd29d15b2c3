"""
Application configuration using pydantic-settings.

Loads configuration from environment variables with sensible defaults.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database (SQLite for local dev, PostgreSQL for production)
    database_url: str = "sqlite:///./ledgerline.db"

    # Application
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"
    app_version: str = "1.0.0"
    cors_origins: List[str] = ["http://localhost:3000"]

    # Error tracking
    sentry_dsn: Optional[str] = None

    # JWT
    jwt_secret_key: str = "ledgerline-dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 30
    jwt_refresh_token_expire_days: int = 7

    # AWS Bedrock (AI extraction)
    aws_region: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    bedrock_model_id: str = "global.anthropic.claude-sonnet-4-5-20250929-v1:0"
    ai_max_tokens: int = 1000
    ai_temperature: float = 0.1  # Low temperature for consistent extraction
    ai_timeout_seconds: float = 30.0

    # Rate limiting (in-memory when no storage URI, e.g. redis://localhost:6379/0)
    extraction_rate_limit: str = "10/minute"
    rate_limit_storage_uri: Optional[str] = None

    @property
    def bedrock_configured(self) -> bool:
        """Whether region and credentials for Bedrock are all present."""
        return bool(self.aws_region and self.aws_access_key_id and self.aws_secret_access_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

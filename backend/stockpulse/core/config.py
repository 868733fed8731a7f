"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "StockPulse Engine"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Alpha Vantage
    alpha_vantage_api_key: Optional[str] = None  # Checked on first request
    alpha_vantage_base_url: str = "https://www.alphavantage.co/query"
    provider_timeout_seconds: float = 5.0

    # Cache
    cache_ttl_seconds: int = 300  # 5 minutes, all endpoints
    redis_url: Optional[str] = None  # None = in-process memory cache

    # Advisory wait after a rate-limit notice
    rate_limit_cooldown_seconds: int = 60


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

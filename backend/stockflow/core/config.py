"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. This ensures:
1. Type validation at startup
2. Centralized configuration
3. Documentation of available settings
4. Proper defaults
"""

from functools import lru_cache
from typing import List, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database - defaults to relative path, override via env for Postgres
    database_url: str = "sqlite:///./data/stockflow.db"

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # ==========================================================================
    # Inventory deduction
    # ==========================================================================
    # Upper bound for a single inventory write before it counts as a storage failure
    storage_write_timeout_seconds: float = 15.0
    # Skips the duplicate-deduction guard; only for controlled POS test runs
    deduction_test_mode: bool = False
    # Max transactions picked up by one retry-pending pass
    sync_retry_batch_size: int = 50

    # ==========================================================================
    # Reporting
    # ==========================================================================
    # Stores without their own timezone report in this zone
    reporting_timezone: str = "Asia/Manila"

    @field_validator("reporting_timezone")
    @classmethod
    def validate_reporting_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown reporting timezone '{v}'") from e
        return v

    @field_validator("storage_write_timeout_seconds")
    @classmethod
    def validate_write_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("storage_write_timeout_seconds must be positive")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Observability
    correlation_ids_enabled: bool = True

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100  # requests per window
    rate_limit_window: int = 60  # window in seconds


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

"""Centralized configuration management using pydantic-settings.

Configuration is loaded from environment variables with sensible defaults.
All settings can be overridden via environment variables or a .env file.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from erp_tax_engine.domain.value_objects import Currency


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Override via environment variables (prefixed with ERPTAX_) or .env file.

    Examples:
        ERPTAX_SQLITE_PATH=/var/lib/erptax/erp.db
        ERPTAX_BASE_CURRENCY=EUR
        ERPTAX_LOG_FORMAT=json
        ERPTAX_CALCULATION_WORKERS=4
    """

    model_config = SettingsConfigDict(
        env_prefix="ERPTAX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "ERP Tax Engine"
    app_version: str = "0.1.0"
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=False, description="Enable debug mode")

    # Database
    sqlite_path: Path = Field(
        default=Path("erp_tax_engine.db"),
        description="SQLite database file path",
    )

    # Logging
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format: 'json' for production, 'console' for development",
    )
    log_file: Path | None = Field(default=None, description="Optional log file path")

    # Money
    base_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency that base-currency mirrors of order amounts are expressed in",
    )
    monetary_precision: int = Field(
        default=2,
        ge=0,
        le=8,
        description="Decimal places used when monetary amounts are persisted",
    )
    rate_precision: int = Field(
        default=4,
        ge=0,
        le=10,
        description="Decimal places used when tax rates are persisted",
    )

    # Calculation
    calculation_workers: int = Field(
        default=1,
        ge=1,
        le=32,
        description="Worker threads for per-line tax resolution; 1 runs lines sequentially",
    )

    @field_validator("base_currency", mode="after")
    @classmethod
    def validate_base_currency(cls, v: str) -> str:
        """Normalize and check the base currency against supported codes."""
        code = v.upper()
        if code not in Currency.__members__:
            raise ValueError(f"Unsupported base currency: {v}")
        return code

    @field_validator("debug", mode="before")
    @classmethod
    def set_debug_from_environment(cls, v: bool, info) -> bool:
        """Auto-enable debug in development environment."""
        if info.data.get("environment") == Environment.DEVELOPMENT:
            return True
        return v

    @field_validator("log_format", mode="before")
    @classmethod
    def set_log_format_from_environment(cls, v: str, info) -> str:
        """Default to JSON logging in production."""
        if v is None:
            env = info.data.get("environment")
            if env == Environment.PRODUCTION:
                return "json"
        return v or "console"

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    @property
    def parallel_calculation(self) -> bool:
        """Whether order lines are resolved on a worker pool."""
        return self.calculation_workers > 1


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()

"""
Configuration management for the ClinicFlow workflow service.

This module provides centralized configuration using Pydantic Settings
for environment-based configuration management.
"""

from decimal import Decimal
from typing import Optional

import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.enums.workflow import StockPolicy


class DatabaseSettings(BaseSettings):
    """Database configuration settings (only used by the mongo visit store)."""

    model_config = SettingsConfigDict(env_prefix="MONGO_")

    uri: str = Field(default="", description="MongoDB connection URI")
    db_name: str = Field(default="clinicflow", description="MongoDB database name")

    @field_validator("uri")
    @classmethod
    def validate_mongo_uri(cls, v: str) -> str:
        """Validate MongoDB URI format when one is given."""
        if v and not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError(
                "MongoDB URI must start with 'mongodb://' or 'mongodb+srv://'"
            )
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="Log format (json or text)")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class WorkflowSettings(BaseSettings):
    """Visit workflow configuration settings."""

    model_config = SettingsConfigDict(env_prefix="WORKFLOW_")

    default_consultation_fee: Decimal = Field(
        default=Decimal("500"), description="Consultation fee charged when check-in does not set one"
    )
    stock_policy: StockPolicy = Field(
        default=StockPolicy.CLAMP,
        description="Dispense behaviour on insufficient stock: 'clamp' floors stock at zero, 'reject' refuses",
    )
    auto_route_check_in: bool = Field(
        default=True,
        description="Route at check-in (Vitals, or Consultation when vitals are skipped) instead of queueing in Check-In",
    )
    store: str = Field(default="memory", description="Visit store backend (memory or mongo)")

    @field_validator("default_consultation_fee")
    @classmethod
    def validate_fee(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Consultation fee must not be negative")
        return v

    @field_validator("store")
    @classmethod
    def validate_store(cls, v: str) -> str:
        valid_stores = ["memory", "mongo"]
        if v.lower() not in valid_stores:
            raise ValueError(f"Visit store must be one of: {valid_stores}")
        return v.lower()


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="ClinicFlow", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    app_env: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=False, description="Debug mode")
    port: int = Field(default=8000, description="Application port")
    host: str = Field(default="0.0.0.0", description="Application host")

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    workflow: WorkflowSettings = Field(default_factory=WorkflowSettings)

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate application environment."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"App environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_testing(self) -> bool:
        return self.app_env == "testing"


# Global settings instance (loaded after attempting to read .env)
_settings: Optional[Settings] = None


def _load_env_file_if_available() -> None:
    """Best-effort load of .env by searching current and parent directories.

    Already-set environment variables are never overridden.
    """
    from dotenv import load_dotenv

    cwd = Path(os.getcwd()).resolve()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / ".env"
        if candidate.exists():
            load_dotenv(dotenv_path=str(candidate), override=False)
            break


def get_settings() -> Settings:
    """Get application settings instance (lazy-init with .env discovery)."""
    global _settings
    if _settings is None:
        _load_env_file_if_available()
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None

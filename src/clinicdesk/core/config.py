"""
Configuration management for ClinicDesk application.

This module provides centralized configuration using Pydantic Settings
for environment-based configuration management.
"""

from typing import List, Optional

import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ErpSettings(BaseSettings):
    """ERP record store connection settings."""

    model_config = SettingsConfigDict(env_prefix="ERP_")

    base_url: str = Field(
        default="http://localhost:8080", description="Base URL of the ERP REST API"
    )
    request_timeout: float = Field(
        default=30.0, description="Client-level request timeout in seconds"
    )
    models_path: str = Field(
        default="/api/v1/models", description="Path prefix of the generic model endpoints"
    )
    auth_path: str = Field(
        default="/api/v1/auth", description="Path prefix of the authentication endpoints"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate ERP base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("ERP base URL must start with 'http://' or 'https://'")
        return v.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate request timeout."""
        if v <= 0:
            raise ValueError("Request timeout must be positive")
        return v


class SessionSettings(BaseSettings):
    """Session persistence settings."""

    model_config = SettingsConfigDict(env_prefix="SESSION_")

    storage_path: str = Field(
        default=".clinicdesk/session.json",
        description="File used to persist the scoped session across restarts",
    )


class ClinicSettings(BaseSettings):
    """Clinic workflow settings."""

    model_config = SettingsConfigDict(env_prefix="CLINIC_")

    copayment: int = Field(default=50, description="Fixed copayment charged at checkout")
    appointment_window_days: int = Field(
        default=7, description="How many days ahead an appointment may be booked"
    )
    registration_slot_minutes: int = Field(
        default=30, description="Length of the assignment window created per registration"
    )
    default_total_days: int = Field(
        default=7, description="Default number of days for a new prescription"
    )
    refresh_interval_seconds: int = Field(
        default=15, description="Interval of the timer-driven queue refresh"
    )

    @field_validator("appointment_window_days")
    @classmethod
    def validate_window(cls, v: int) -> int:
        """Validate appointment window."""
        if not 0 <= v <= 90:
            raise ValueError("appointment_window_days must be between 0 and 90")
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="Log format (json or text)")
    file_path: Optional[str] = Field(default=None, description="Log file path")

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
        """Validate logging format."""
        if v.lower() not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class CORSSettings(BaseSettings):
    """CORS configuration settings."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )
    allow_credentials: bool = Field(default=True, description="Allow credentials in CORS")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    app_name: str = Field(default="ClinicDesk", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    app_env: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=False, description="Debug mode")
    port: int = Field(default=8000, description="Application port")
    host: str = Field(default="0.0.0.0", description="Application host")

    erp: ErpSettings = Field(default_factory=ErpSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    clinic: ClinicSettings = Field(default_factory=ClinicSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)

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
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.app_env == "testing"


# Global settings instance (loaded after attempting to read .env)
_settings: Optional[Settings] = None


def _load_env_file_if_available() -> None:
    """Best-effort load of .env by searching current and parent directories.

    Nested settings groups read ``os.environ`` directly, so the file has to be
    loaded into the environment before they are constructed.
    """
    from dotenv import load_dotenv

    cwd = Path(os.getcwd()).resolve()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / ".env"
        if candidate.exists():
            # Do not override already-set environment variables
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

"""Centralized configuration management for the MoneyLens service.

This module provides a Pydantic Settings-based configuration system that
consolidates database, server, seeding, rule and logging settings with
environment variable integration and validation.
"""

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

IN_MEMORY = ":memory:"


class DatabaseConfig(BaseModel):
    """Database configuration settings."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(
        default=IN_MEMORY,
        description="DuckDB database file, or ':memory:' for an in-process database",
    )
    create_dirs: bool = Field(
        default=True, description="Automatically create database directories"
    )

    @field_validator("path")
    @classmethod
    def validate_database_path(cls, v: str) -> str:
        """Ensure a file database path has the correct extension."""
        if v == IN_MEMORY:
            return v
        if not v.endswith((".db", ".duckdb")):
            raise ValueError("Database path must be ':memory:' or end with .db or .duckdb")
        return v

    @property
    def is_in_memory(self) -> bool:
        """Whether the database lives only in process memory."""
        return self.path == IN_MEMORY


class ServerConfig(BaseModel):
    """HTTP server settings."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="127.0.0.1", description="Interface to bind")
    port: int = Field(default=3001, ge=1, le=65535, description="Port to listen on")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"], description="Allowed CORS origins"
    )


class SeedConfig(BaseModel):
    """Mock data generation settings."""

    model_config = ConfigDict(frozen=True)

    random_seed: int | None = Field(
        default=None, description="Seed for mock data; None for fresh data each run"
    )
    transaction_count: int = Field(
        default=150, ge=0, le=100_000, description="Number of mock transactions"
    )
    history_days: int = Field(
        default=90, ge=1, le=3650, description="Days of mock transaction history"
    )
    on_startup: bool = Field(
        default=True, description="Seed mock and demo data when the server starts"
    )


class RulesConfig(BaseModel):
    """Spending cap evaluation thresholds, in percent of the cap."""

    model_config = ConfigDict(frozen=True)

    near_cap_threshold: float = Field(default=80.0, gt=0, le=100)
    over_cap_threshold: float = Field(default=100.0, gt=0)

    @model_validator(mode="after")
    def validate_threshold_order(self) -> "RulesConfig":
        """Near-cap must trigger before over-cap."""
        if self.near_cap_threshold >= self.over_cap_threshold:
            raise ValueError("near_cap_threshold must be below over_cap_threshold")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_to_file: bool = Field(default=False, description="Enable file logging")
    log_file_path: Path = Field(
        default=Path("logs/moneylens.log"), description="Path to log file"
    )
    max_file_size_mb: int = Field(
        default=50, ge=1, le=1000, description="Maximum log file size in MB"
    )
    backup_count: int = Field(
        default=5, ge=1, le=50, description="Number of log file backups to keep"
    )


class MoneyLensSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the MONEYLENS_ prefix.
    For nested configs, use double underscores: MONEYLENS_SERVER__PORT

    The bare DUCKDB_PATH and PORT variables are honored as fallbacks when the
    corresponding MONEYLENS_ setting is not given.
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    seed: SeedConfig = Field(default_factory=SeedConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    demo_user_email: str = Field(
        default="test@moneylens.com",
        description="User served when a request carries no X-User-Id header",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MONEYLENS_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="before")
    @classmethod
    def apply_legacy_variables(cls, data: Any) -> Any:
        """Fill database.path and server.port from DUCKDB_PATH and PORT.

        Only fields left unset by init arguments and MONEYLENS_ variables are
        filled; other fields of the same section are kept.
        """
        if not isinstance(data, dict):
            return data

        data = dict(data)
        duckdb_path = os.getenv("DUCKDB_PATH")
        if duckdb_path:
            data["database"] = _with_fallback(data.get("database"), "path", duckdb_path)

        # The bare PORT variable most hosting platforms set
        port = os.getenv("PORT")
        if port and port.isdigit():
            data["server"] = _with_fallback(data.get("server"), "port", int(port))

        return data

    def create_directories(self) -> None:
        """Create necessary directories for the application."""
        directories: list[Path] = []
        if self.logging.log_to_file:
            directories.append(self.logging.log_file_path.parent)
        if not self.database.is_in_memory:
            directories.append(Path(self.database.path).parent)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)


_settings: MoneyLensSettings | None = None


def get_settings() -> MoneyLensSettings:
    """Get the settings instance.

    Settings are loaded once and cached for the life of the process.

    Returns:
        MoneyLensSettings: The configuration instance

    Raises:
        ValueError: If configuration is missing or invalid
    """
    global _settings

    if _settings is not None:
        return _settings

    try:
        settings = MoneyLensSettings()
        if settings.database.create_dirs:
            settings.create_directories()
    except Exception as e:
        raise ValueError(f"Configuration error: {e}") from e

    _settings = settings
    return settings


def reload_settings() -> MoneyLensSettings:
    """Reload settings from environment variables.

    Returns:
        MoneyLensSettings: The reloaded configuration instance
    """
    clear_settings_cache()
    return get_settings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next access reloads them."""
    global _settings
    _settings = None


def get_database_path() -> str:
    """Get the configured database path.

    Returns:
        str: The database path or ':memory:'
    """
    return get_settings().database.path


def _with_fallback(section: Any, field: str, value: Any) -> Any:
    """Set `field` on a raw settings section unless it is already given."""
    if section is None:
        return {field: value}
    if isinstance(section, dict) and field not in section:
        return {**section, field: value}
    return section

"""
Configuration management for PromptPilot.

This module provides centralized configuration using Pydantic Settings
for environment-based configuration management.
"""

from typing import Optional

import os
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Remote store (MongoDB) configuration settings."""

    model_config = SettingsConfigDict(env_prefix="MONGO_")

    uri: str = Field(
        default="", description="MongoDB connection URI (empty = local-only mode)"
    )
    db_name: str = Field(default="promptpilot", description="MongoDB database name")
    server_selection_timeout_ms: int = Field(
        default=15000, description="Server selection timeout in milliseconds"
    )

    @field_validator("uri")
    @classmethod
    def validate_mongo_uri(cls, v: str) -> str:
        """Validate MongoDB URI format when one is configured."""
        if v and not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError(
                "MongoDB URI must start with 'mongodb://' or 'mongodb+srv://'"
            )
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.uri)


class CacheSettings(BaseSettings):
    """Local cache configuration settings."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    directory: str = Field(
        default="./.promptpilot", description="Directory holding the namespace files"
    )
    namespace: str = Field(
        default="promptpilot_prompt_groups", description="Namespace key for prompt groups"
    )
    capacity_bytes: int = Field(
        default=5 * 1024 * 1024, description="Nominal storage ceiling in bytes (5MB)"
    )
    near_limit_ratio: float = Field(
        default=0.8, description="Fraction of capacity that triggers the near-limit warning"
    )

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Namespace is used as a file name, so keep it to a safe character set."""
        v = v.strip()
        if not v or not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError("Cache namespace must be alphanumeric (underscores and dashes allowed)")
        return v

    @field_validator("capacity_bytes")
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Cache capacity must be positive")
        return v

    @field_validator("near_limit_ratio")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("near_limit_ratio must be in (0, 1]")
        return v


class SyncSettings(BaseSettings):
    """Reconciliation (local <-> remote) configuration settings."""

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    enabled: bool = Field(default=True, description="Enable background reconciliation when a remote store is configured")
    pull_interval_seconds: int = Field(
        default=60, description="Interval between periodic pulls (0 disables the pull worker)"
    )
    pull_delay_seconds: float = Field(
        default=0.1, description="Delay before the follow-up pull after create/delete"
    )
    max_push_attempts: int = Field(
        default=5, description="Failed pushes of one record before it is dead-lettered"
    )
    backoff_base_seconds: float = Field(default=1.0, description="First retry delay after a failed push")
    backoff_max_seconds: float = Field(default=60.0, description="Upper bound for the retry delay")
    remote_timeout_seconds: float = Field(
        default=30.0, description="Per-call remote timeout (0 disables the timeout)"
    )

    @field_validator("pull_interval_seconds")
    @classmethod
    def validate_non_negative_int(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Value must not be negative")
        return v

    @field_validator("max_push_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_push_attempts must be at least 1")
        return v

    @field_validator("pull_delay_seconds", "backoff_base_seconds", "remote_timeout_seconds")
    @classmethod
    def validate_non_negative_float(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Value must not be negative")
        return v

    @model_validator(mode="after")
    def validate_backoff_bounds(self) -> "SyncSettings":
        if self.backoff_max_seconds < self.backoff_base_seconds:
            raise ValueError("backoff_max_seconds must be >= backoff_base_seconds")
        return self


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


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="PromptPilot", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    app_env: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=False, description="Debug mode")
    port: int = Field(default=8000, description="Application port")
    host: str = Field(default="0.0.0.0", description="Application host")

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

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
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def remote_sync_enabled(self) -> bool:
        """Reconciliation runs only with a configured remote store."""
        return self.sync.enabled and self.database.is_configured


# Global settings instance (loaded after attempting to read .env)
_settings: Optional[Settings] = None


def _load_env_file_if_available() -> None:
    """Best-effort load of .env by searching current and parent directories.

    Sub-settings read their own prefixes straight from the environment, so the
    file has to be loaded into ``os.environ`` before they are built.
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

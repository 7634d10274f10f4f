"""
Configuration management for the Document Repository service.
Loads settings from environment variables and .env file.
"""

import logging
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or .env file.

    Backend selection:
    - DOCSTORE_BACKEND: 'memory', 'local', 'sqlite', 's3' or 'remote'

    Backend-specific settings (required for the matching backend):
    - DOCSTORE_DIRECTORY: Root directory for the local backend
    - DOCSTORE_DATABASE_PATH: SQLite database file for the sqlite backend
    - DOCSTORE_S3_BUCKET: Bucket for the s3 backend
    - DOCSTORE_REMOTE_URL: Base URL for the remote backend
    """

    backend: Literal["memory", "local", "sqlite", "s3", "remote"] = Field(
        default="local",
        description="Storage backend",
        validation_alias="DOCSTORE_BACKEND"
    )

    directory: Optional[str] = Field(
        default=None,
        description="Root directory for the local backend",
        validation_alias="DOCSTORE_DIRECTORY"
    )

    database_path: Optional[str] = Field(
        default=None,
        description="Path to SQLite database file",
        validation_alias="DOCSTORE_DATABASE_PATH"
    )

    s3_bucket: Optional[str] = Field(
        default=None,
        description="S3 bucket holding all records",
        validation_alias="DOCSTORE_S3_BUCKET"
    )

    s3_region: Optional[str] = Field(
        default=None,
        description="AWS region of the bucket",
        validation_alias="DOCSTORE_S3_REGION"
    )

    remote_url: Optional[str] = Field(
        default=None,
        description="Base URL of a remote repository service",
        validation_alias="DOCSTORE_REMOTE_URL"
    )

    remote_credentials: Optional[str] = Field(
        default=None,
        description="Credential artifact sent to the remote repository service",
        validation_alias="DOCSTORE_CREDENTIALS"
    )

    credentials_header: str = Field(
        default="Nebula-Credentials",
        description="Header carrying request credentials",
        validation_alias="DOCSTORE_CREDENTIALS_HEADER"
    )

    # Caching of immutable records
    cache_enabled: bool = Field(
        default=True,
        description="Wrap the repository in a read-through cache",
        validation_alias="DOCSTORE_CACHE_ENABLED"
    )

    cache_capacity: int = Field(
        default=256,
        description="Maximum cached entries per resource family",
        validation_alias="DOCSTORE_CACHE_CAPACITY"
    )

    # Service settings
    require_credentials: bool = Field(
        default=False,
        description="Reject service requests without a credentials header",
        validation_alias="DOCSTORE_REQUIRE_CREDENTIALS"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level",
        validation_alias="DOCSTORE_LOG_LEVEL"
    )

    # Model configuration for pydantic-settings
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("cache_capacity")
    @classmethod
    def validate_cache_capacity(cls, v: int) -> int:
        """Cache capacity must allow at least one entry."""
        if v < 1:
            raise ValueError("DOCSTORE_CACHE_CAPACITY must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level name."""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown DOCSTORE_LOG_LEVEL: {v}")
        return level

    @field_validator("remote_url")
    @classmethod
    def validate_remote_url(cls, v: Optional[str]) -> Optional[str]:
        """Remote URL must be http(s)."""
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("DOCSTORE_REMOTE_URL must start with http:// or https://")
        return v

    @model_validator(mode="after")
    def validate_backend_settings(self) -> "Settings":
        """Ensure the selected backend has what it needs."""
        required = {
            "local": ("directory", "DOCSTORE_DIRECTORY"),
            "sqlite": ("database_path", "DOCSTORE_DATABASE_PATH"),
            "s3": ("s3_bucket", "DOCSTORE_S3_BUCKET"),
            "remote": ("remote_url", "DOCSTORE_REMOTE_URL"),
        }
        if self.backend in required:
            field, env_var = required[self.backend]
            if not getattr(self, field):
                raise ValueError(f"{env_var} is required for the {self.backend} backend")
        return self


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get global settings instance (singleton pattern).

    Returns:
        Settings: Application settings
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings so the next call reloads them."""
    global _settings
    _settings = None

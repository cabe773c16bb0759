"""Configuration management using Pydantic Settings.

This module provides centralized, type-safe configuration for the overcode
indexer. Configuration is loaded from environment variables with sensible
defaults. Nothing here touches the filesystem; directory layout is created
by the stores' ``ensure_layout`` methods.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class AppSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(env_prefix="APP_")

    name: str = "overcode"
    env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"


class IndexingSettings(BaseSettings):
    """Indexing, ignore rules and storage layout settings."""

    model_config = SettingsConfigDict(env_prefix="OVERCODE_")

    metadata_dir: str = Field(default=".overcode", min_length=1)
    hash_algorithm: Literal["sha256", "sha512", "blake2b"] = "sha256"

    # Ignore rules
    ignore_patterns: str = ".git"
    ignore_files: str = ""
    respect_gitignore: bool = True

    @field_validator("metadata_dir")
    @classmethod
    def validate_metadata_dir(cls, v: str) -> str:
        """Metadata directory must be a single path component."""
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError("metadata_dir must be a plain directory name")
        return v

    @property
    def ignore_patterns_list(self) -> list[str]:
        """Get ignore patterns as a list."""
        return _split_list(self.ignore_patterns)

    @property
    def ignore_files_list(self) -> list[str]:
        """Get ignore-file paths as a list."""
        return _split_list(self.ignore_files)


class Settings(BaseSettings):
    """Main settings container aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    indexing: IndexingSettings = Field(default_factory=IndexingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()

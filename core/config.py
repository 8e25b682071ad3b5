"""
Engine configuration.

Uses pydantic-settings so every value can come from the environment
(CANONICAL_ENGINE_*) or a .env file. Components receive an EngineSettings
instance through their constructor; get_settings() only provides a
convenient default for callers that do not build their own.

Example:
    export CANONICAL_ENGINE_LAZY_MIGRATION=true
    export CANONICAL_ENGINE_MIGRATION_CONCURRENCY=8
"""

import logging
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Settings for the storage reconciler and migration driver."""

    model_config = SettingsConfigDict(
        env_prefix="CANONICAL_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    lazy_migration: bool = Field(
        default=False,
        description="Persist canonical documents on first read of a legacy archive",
    )
    migration_concurrency: int = Field(
        default=4,
        ge=1,
        description="Maximum versions migrated in parallel by a batch",
    )
    blob_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Default deadline for a legacy archive fetch",
    )
    blob_workers: int = Field(
        default=8,
        ge=1,
        description="Worker threads used for deadline-bounded blob fetches",
    )
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level for engine loggers",
    )


_settings: Optional[EngineSettings] = None


def get_settings(**overrides) -> EngineSettings:
    """
    Get the default settings instance.

    Creates it on first call. Passing overrides always builds a new one.
    """
    global _settings

    if overrides or _settings is None:
        _settings = EngineSettings(**overrides)

    return _settings


def reset_settings() -> None:
    """Reset the default settings (for testing)."""
    global _settings
    _settings = None


ENGINE_LOGGERS = ('core', 'adapters', 'conversion', 'storage')


def configure_logging(settings: Optional[EngineSettings] = None) -> None:
    """Apply the configured level to the engine's package loggers."""
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper())
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(level)

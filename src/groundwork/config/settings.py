"""
Application settings using Pydantic.

Provides environment-based configuration loading with GROUNDWORK_ prefix.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GROUNDWORK_",
    )

    # State store
    state_backend: Literal["file", "sqlite", "memory"] = "file"
    state_path: str = "groundwork.state.json"
    database_url: str = "sqlite:///groundwork.state.db"

    # Provider collaborator
    provider: str = "memory"

    # Executor
    max_concurrency: int = Field(default=10, ge=1)
    max_attempts: int = Field(default=5, ge=1)
    backoff_initial: float = Field(default=1.0, ge=0)
    backoff_max: float = Field(default=30.0, ge=0)

    # Logging
    log_level: str = "WARNING"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

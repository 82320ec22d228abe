"""
groundwork configuration.

Pydantic-based settings read from GROUNDWORK_* environment variables and an
optional .env file. CLI flags override individual values.
"""

from groundwork.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]

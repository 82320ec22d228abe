"""State store: last-applied resource records keyed by logical name."""

from __future__ import annotations

from pathlib import Path

from groundwork.config import Settings
from groundwork.state.models import StateRecord, StateSnapshot
from groundwork.state.store import FileStateStore, MemoryStateStore, StateStore


def open_state_store(settings: Settings) -> StateStore:
    """Open the backend selected by ``settings.state_backend``."""
    if settings.state_backend == "memory":
        return MemoryStateStore()
    if settings.state_backend == "sqlite":
        from groundwork.state.sql import SqlStateStore

        return SqlStateStore(settings.database_url)
    return FileStateStore(Path(settings.state_path))


__all__ = [
    "FileStateStore",
    "MemoryStateStore",
    "StateRecord",
    "StateSnapshot",
    "StateStore",
    "open_state_store",
]

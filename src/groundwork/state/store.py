"""
State store backends.

Every backend is keyed by logical name and makes each upsert/delete durable
before returning, so a run that dies halfway still has every completed step
on record.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

import structlog

from groundwork.core.errors import StateStoreError
from groundwork.state.models import StateRecord, StateSnapshot

logger = structlog.get_logger()

STATE_FORMAT_VERSION = 1
DEFAULT_STATE_PATH = Path("groundwork.state.json")


class StateStore(Protocol):
    """Contract for state persistence."""

    def read_all(self) -> StateSnapshot:
        ...

    def upsert(self, record: StateRecord) -> None:
        ...

    def delete(self, name: str) -> None:
        ...


class MemoryStateStore:
    """Process-local store for plan-only runs and tests."""

    def __init__(self, records: list[StateRecord] | None = None) -> None:
        self._records: dict[str, StateRecord] = {r.name: r for r in records or []}
        self._lock = threading.Lock()

    def read_all(self) -> StateSnapshot:
        with self._lock:
            return dict(self._records)

    def upsert(self, record: StateRecord) -> None:
        with self._lock:
            self._records[record.name] = record

    def delete(self, name: str) -> None:
        with self._lock:
            self._records.pop(name, None)


class FileStateStore:
    """JSON document on disk, rewritten atomically on every write.

    Layout: ``{"version": 1, "resources": {name: record}}``.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path else DEFAULT_STATE_PATH
        self._lock = threading.Lock()

    def read_all(self) -> StateSnapshot:
        with self._lock:
            resources = self._load().get("resources", {})
        snapshot: StateSnapshot = {}
        for name, data in resources.items():
            try:
                snapshot[name] = StateRecord.from_dict(data)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise StateStoreError(
                    f"Invalid state record '{name}': {exc!r}",
                    details={"path": str(self.path), "resource": name},
                ) from exc
        return snapshot

    def upsert(self, record: StateRecord) -> None:
        with self._lock:
            document = self._load()
            document.setdefault("resources", {})[record.name] = record.to_dict()
            self._save(document)
        logger.debug("state_upserted", resource=record.name, path=str(self.path))

    def delete(self, name: str) -> None:
        with self._lock:
            document = self._load()
            if name not in document.get("resources", {}):
                return
            del document["resources"][name]
            self._save(document)
        logger.debug("state_deleted", resource=name, path=str(self.path))

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"version": STATE_FORMAT_VERSION, "resources": {}}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise StateStoreError(
                f"Failed to read state file: {exc}", details={"path": str(self.path)}
            ) from exc
        if not isinstance(data, dict):
            raise StateStoreError(
                "State file must contain a JSON object",
                details={"path": str(self.path), "found": type(data).__name__},
            )
        if data.get("version") != STATE_FORMAT_VERSION:
            raise StateStoreError(
                "Unsupported state file version",
                details={"path": str(self.path), "version": data.get("version")},
            )
        if not isinstance(data.get("resources", {}), dict):
            raise StateStoreError(
                "State file 'resources' must be an object", details={"path": str(self.path)}
            )
        return data

    def _save(self, document: dict[str, Any]) -> None:
        payload = json.dumps(document, indent=2, sort_keys=True) + "\n"
        directory = self.path.parent if str(self.path.parent) else Path(".")
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".groundwork-", dir=directory)
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StateStoreError(
                f"Failed to write state file: {exc}", details={"path": str(self.path)}
            ) from exc

"""Changeset models produced by the diff engine."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from groundwork.catalog.types import ReplaceOrdering
from groundwork.core.values import thaw
from groundwork.state.models import StateRecord


class ChangeAction(str, Enum):
    """What happens to a resource in this run."""

    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEntry:
    """One change for one logical name.

    Attributes:
        name: Logical name
        action: Create, update, replace or delete
        resource_type: Desired type (prior type for deletes)
        properties: Desired declared properties (empty for deletes)
        prior: Last-applied record (None for creates)
        changed: Top-level property keys that differ from the prior record
        ordering: Replace ordering (replacements only)
        triggered_by: Replaced dependency that caused this entry, if the
            resource's own declaration did not change
    """

    name: str
    action: ChangeAction
    resource_type: str
    properties: Mapping[str, Any] = field(default_factory=dict)
    prior: StateRecord | None = None
    changed: frozenset[str] = frozenset()
    ordering: ReplaceOrdering | None = None
    triggered_by: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "action": self.action.value,
            "resource_type": self.resource_type,
            "changed": sorted(self.changed),
            "ordering": self.ordering.value if self.ordering else None,
            "triggered_by": self.triggered_by,
            "prior_identifier": self.prior.identifier if self.prior else None,
            "properties": thaw(self.properties),
        }


@dataclass
class Changeset:
    """Ordering-independent set of changes, keyed by logical name."""

    entries: dict[str, ChangeEntry] = field(default_factory=dict)

    def add(self, entry: ChangeEntry) -> None:
        self.entries[entry.name] = entry

    def get(self, name: str) -> ChangeEntry | None:
        return self.entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __iter__(self) -> Iterator[ChangeEntry]:
        return iter(self.entries[name] for name in sorted(self.entries))

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def by_action(self, action: ChangeAction) -> list[ChangeEntry]:
        return [entry for entry in self if entry.action is action]

    def summary(self) -> dict[str, int]:
        """Count entries per action."""
        counts = {action.value: 0 for action in ChangeAction}
        for entry in self.entries.values():
            counts[entry.action.value] += 1
        return counts

"""State record models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StateRecord:
    """Last-applied snapshot of a resource.

    Attributes:
        name: Logical name (the store key)
        resource_type: Type tag the resource was created with
        identifier: Provider-assigned identifier
        property_hash: Hash of the declared properties last applied
        properties: Declared (unresolved) properties last applied
        outputs: Output attributes reported by the provider
        dependencies: Logical names this resource depended on when applied
        updated_at: When the record was last written
    """

    name: str
    resource_type: str
    identifier: str
    property_hash: str
    properties: dict[str, Any] = field(default_factory=dict)
    outputs: dict[str, Any] = field(default_factory=dict)
    dependencies: list[str] = field(default_factory=list)
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "resource_type": self.resource_type,
            "identifier": self.identifier,
            "property_hash": self.property_hash,
            "properties": self.properties,
            "outputs": self.outputs,
            "dependencies": sorted(self.dependencies),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StateRecord:
        updated_at = data.get("updated_at")
        return cls(
            name=data["name"],
            resource_type=data["resource_type"],
            identifier=data["identifier"],
            property_hash=data["property_hash"],
            properties=dict(data.get("properties") or {}),
            outputs=dict(data.get("outputs") or {}),
            dependencies=list(data.get("dependencies") or []),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else _utcnow(),
        )


# Snapshot of all records keyed by logical name
StateSnapshot = dict[str, StateRecord]

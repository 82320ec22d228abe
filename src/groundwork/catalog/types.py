"""Resource type metadata and registry."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ReplaceOrdering(str, Enum):
    """How a replacement swaps the old instance for the new one."""

    DESTROY_BEFORE_CREATE = "destroy_before_create"
    CREATE_BEFORE_DESTROY = "create_before_destroy"


@dataclass(frozen=True)
class ResourceTypeSpec:
    """Diff-relevant behaviour of a resource type.

    Attributes:
        name: Type tag used in declarations (e.g. "aws:ec2/vpc")
        immutable: Top-level properties that cannot be changed in place
        create_before_destroy: Provision the replacement before destroying
            the old instance (avoids downtime, e.g. load balancer swaps)
        description: Human-readable description
    """

    name: str
    immutable: frozenset[str] = frozenset()
    create_before_destroy: bool = False
    description: str = ""

    @property
    def replace_ordering(self) -> ReplaceOrdering:
        if self.create_before_destroy:
            return ReplaceOrdering.CREATE_BEFORE_DESTROY
        return ReplaceOrdering.DESTROY_BEFORE_CREATE

    def requires_replace(self, changed: set[str] | frozenset[str]) -> bool:
        """True when any changed property is immutable for this type."""
        return bool(self.immutable & set(changed))


class TypeRegistry:
    """In-memory registry of resource type specs.

    Unknown types get a permissive default: every property is mutable and
    replacement (only on a type change) destroys before creating.
    """

    def __init__(self, specs: list[ResourceTypeSpec] | None = None) -> None:
        self._specs: dict[str, ResourceTypeSpec] = {}
        for spec in specs or []:
            self.register(spec)

    def register(self, spec: ResourceTypeSpec) -> None:
        """Register a spec by its name, replacing any previous one."""
        if not spec.name:
            raise ValueError("Resource type name is required")
        self._specs[spec.name] = spec

    def get(self, name: str) -> ResourceTypeSpec:
        """Get the registered type, or the permissive default."""
        return self._specs.get(name) or ResourceTypeSpec(name=name)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def list(self) -> list[str]:
        """List registered type names."""
        return sorted(self._specs)

"""
Resource graph models.

Declared resources, the edges derived from their references, and the DAG
consumed by the diff engine and planner.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from groundwork.core.values import freeze, thaw


@dataclass(frozen=True)
class ResourceNode:
    """A declared resource.

    Attributes:
        name: Logical name, unique within a declaration set
        type: Resource type tag (e.g. "aws:ec2/vpc")
        properties: Declared property map, deep-frozen on construction
        depends_on: Explicit dependencies by logical name
    """

    name: str
    type: str
    properties: Mapping[str, Any] = field(default_factory=dict)
    depends_on: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", freeze(dict(self.properties)))
        object.__setattr__(self, "depends_on", frozenset(self.depends_on))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "type": self.type,
            "properties": thaw(self.properties),
            "depends_on": sorted(self.depends_on),
        }


@dataclass(frozen=True)
class DependencyEdge:
    """``source`` depends on ``target``: target is applied first."""

    source: str
    target: str
    explicit: bool = False
    attributes: frozenset[str] = frozenset()
    properties: frozenset[str] = frozenset()  # top-level keys of source holding the reference


class ResourceGraph:
    """Immutable DAG of declared resources.

    Built by :class:`groundwork.graph.builder.GraphBuilder`, which guarantees
    every edge endpoint exists and the edges are acyclic.
    """

    def __init__(self, nodes: Iterable[ResourceNode], edges: Iterable[DependencyEdge]) -> None:
        self._nodes: dict[str, ResourceNode] = {n.name: n for n in nodes}
        self._edges: dict[tuple[str, str], DependencyEdge] = {}
        self._deps: dict[str, set[str]] = {name: set() for name in self._nodes}
        self._rdeps: dict[str, set[str]] = {name: set() for name in self._nodes}
        for edge in edges:
            self._edges[(edge.source, edge.target)] = edge
            self._deps[edge.source].add(edge.target)
            self._rdeps[edge.target].add(edge.source)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def names(self) -> list[str]:
        return sorted(self._nodes)

    @property
    def edges(self) -> list[DependencyEdge]:
        return [self._edges[key] for key in sorted(self._edges)]

    def get(self, name: str) -> ResourceNode:
        return self._nodes[name]

    def edge(self, source: str, target: str) -> DependencyEdge | None:
        return self._edges.get((source, target))

    def dependencies_of(self, name: str) -> set[str]:
        """Resources ``name`` depends on directly."""
        return set(self._deps[name])

    def dependents_of(self, name: str) -> set[str]:
        """Resources that depend on ``name`` directly."""
        return set(self._rdeps[name])

    def transitive_dependents(self, name: str) -> set[str]:
        """All resources reachable by following dependents from ``name``."""
        seen: set[str] = set()
        stack = [name]
        while stack:
            for dependent in self._rdeps[stack.pop()]:
                if dependent not in seen:
                    seen.add(dependent)
                    stack.append(dependent)
        return seen

    def topological_order(self) -> list[str]:
        """Dependencies first; ties broken by logical name."""
        remaining = {name: len(deps) for name, deps in self._deps.items()}
        ready = [name for name, count in remaining.items() if count == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            name = heapq.heappop(ready)
            order.append(name)
            for dependent in self._rdeps[name]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, dependent)
        return order

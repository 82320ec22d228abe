"""
Resource graph builder.

Turns declared resources into a :class:`ResourceGraph`. Edges come from
explicit ``depends_on`` entries and from ``${name.attr}`` references inside
properties. Missing references and cycles are rejected before anything is
planned or applied.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from groundwork.core.errors import CycleError, DuplicateResourceError, MissingReferenceError
from groundwork.graph.lookups import LookupResolver
from groundwork.graph.models import DependencyEdge, ResourceGraph, ResourceNode
from groundwork.graph.references import collect_references

logger = structlog.get_logger()


def build_graph(nodes: Iterable[ResourceNode]) -> ResourceGraph:
    """Link already-resolved nodes into a DAG.

    Raises:
        DuplicateResourceError: if two nodes share a logical name
        MissingReferenceError: if a node depends on an unknown name
        CycleError: if the dependencies are cyclic
    """
    by_name: dict[str, ResourceNode] = {}
    for node in nodes:
        if node.name in by_name:
            raise DuplicateResourceError(node.name)
        by_name[node.name] = node

    edges: list[DependencyEdge] = []
    for node in by_name.values():
        edges.extend(_edges_for(node, by_name))

    adjacency: dict[str, list[str]] = {name: [] for name in by_name}
    for edge in edges:
        adjacency[edge.source].append(edge.target)

    cycle = find_cycle(adjacency)
    if cycle:
        raise CycleError(cycle)

    graph = ResourceGraph(by_name.values(), edges)
    logger.debug("graph_built", nodes=len(graph), edges=len(edges))
    return graph


def _edges_for(node: ResourceNode, by_name: dict[str, ResourceNode]) -> list[DependencyEdge]:
    attributes: dict[str, set[str]] = {}
    properties: dict[str, set[str]] = {}

    for key, refs in collect_references(node.properties).items():
        for ref in refs:
            attributes.setdefault(ref.resource, set()).add(ref.attribute)
            properties.setdefault(ref.resource, set()).add(key)

    targets = set(attributes) | set(node.depends_on)
    edges = []
    for target in sorted(targets):
        if target not in by_name:
            raise MissingReferenceError(node.name, target)
        edges.append(
            DependencyEdge(
                source=node.name,
                target=target,
                explicit=target in node.depends_on,
                attributes=frozenset(attributes.get(target, ())),
                properties=frozenset(properties.get(target, ())),
            )
        )
    return edges


def find_cycle(adjacency: dict[str, list[str]]) -> list[str] | None:
    """Return the nodes of one cycle in ``adjacency``, or None if acyclic.

    Iterative depth-first search; names are visited in sorted order so the
    reported cycle is deterministic.
    """
    white, grey, black = 0, 1, 2
    color = {name: white for name in adjacency}

    for root in sorted(adjacency):
        if color[root] != white:
            continue
        path: list[str] = [root]
        stack = [iter(sorted(adjacency[root]))]
        color[root] = grey
        while stack:
            advanced = False
            for child in stack[-1]:
                if color.get(child, black) == grey:
                    return path[path.index(child):]
                if color.get(child, black) == white:
                    color[child] = grey
                    path.append(child)
                    stack.append(iter(sorted(adjacency[child])))
                    advanced = True
                    break
            if not advanced:
                color[path.pop()] = black
                stack.pop()
    return None


class GraphBuilder:
    """Resolves lookups, then links declarations into a graph."""

    def __init__(self, lookups: LookupResolver | None = None) -> None:
        self._lookups = lookups or LookupResolver()

    async def build(self, declarations: Iterable[ResourceNode]) -> ResourceGraph:
        """Build the DAG for one run.

        Lookups are resolved first so the resulting nodes carry concrete
        values; the diff engine then sees a changed lookup result as an
        ordinary property change.
        """
        resolved = []
        for node in declarations:
            properties = await self._lookups.resolve_value(node.properties)
            resolved.append(
                ResourceNode(
                    name=node.name,
                    type=node.type,
                    properties=properties,
                    depends_on=node.depends_on,
                )
            )
        return build_graph(resolved)

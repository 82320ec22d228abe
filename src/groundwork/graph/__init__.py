"""Resource graph: declarations, references, lookups and the DAG builder."""

from groundwork.graph.builder import GraphBuilder, build_graph, find_cycle
from groundwork.graph.lookups import LOCAL_LOOKUPS, LookupResolver, LookupSource
from groundwork.graph.models import DependencyEdge, ResourceGraph, ResourceNode
from groundwork.graph.references import (
    Reference,
    ReferenceResolutionError,
    collect_references,
    is_lookup,
    iter_references,
    resolve_references,
)

__all__ = [
    "DependencyEdge",
    "GraphBuilder",
    "LOCAL_LOOKUPS",
    "LookupResolver",
    "LookupSource",
    "Reference",
    "ReferenceResolutionError",
    "ResourceGraph",
    "ResourceNode",
    "build_graph",
    "collect_references",
    "find_cycle",
    "is_lookup",
    "iter_references",
    "resolve_references",
]

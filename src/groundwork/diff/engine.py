"""
Diff engine.

Compares the desired graph against the last-applied state snapshot and
produces a :class:`Changeset`. Decisions are made on declared (unresolved)
properties only, so the same manifest applied twice yields an empty
changeset.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from groundwork.catalog.types import TypeRegistry
from groundwork.core.values import property_hash, thaw
from groundwork.diff.models import ChangeAction, ChangeEntry, Changeset
from groundwork.graph.models import ResourceGraph, ResourceNode
from groundwork.state.models import StateRecord, StateSnapshot

logger = structlog.get_logger()

EMPTY_HASH = property_hash({})


def changed_keys(desired: Mapping[str, Any], prior: Mapping[str, Any]) -> frozenset[str]:
    """Top-level keys whose values differ (including added and removed keys)."""
    desired = thaw(desired)
    keys = set(desired) | set(prior)
    return frozenset(k for k in keys if desired.get(k) != prior.get(k))


class DiffEngine:
    """Classifies every logical name as create, update, replace, delete or no-op."""

    def __init__(self, types: TypeRegistry | None = None) -> None:
        self.types = types or TypeRegistry()

    def diff(self, graph: ResourceGraph, snapshot: StateSnapshot) -> Changeset:
        changeset = Changeset()

        order = graph.topological_order()
        for name in order:
            entry = self._classify(graph.get(name), snapshot.get(name))
            if entry is not None:
                changeset.add(entry)

        for name in sorted(set(snapshot) - set(graph.names)):
            prior = snapshot[name]
            changeset.add(
                ChangeEntry(
                    name=name,
                    action=ChangeAction.DELETE,
                    resource_type=prior.resource_type,
                    prior=prior,
                )
            )

        # Dependencies come first in topological order, so a cascaded replace
        # propagates further down the graph in the same pass.
        for name in order:
            cascaded = self._cascade(graph, graph.get(name), snapshot, changeset)
            if cascaded is not None:
                changeset.add(cascaded)

        logger.debug("diff_computed", **changeset.summary())
        return changeset

    def _classify(self, node: ResourceNode, prior: StateRecord | None) -> ChangeEntry | None:
        if prior is None:
            return ChangeEntry(
                name=node.name,
                action=ChangeAction.CREATE,
                resource_type=node.type,
                properties=node.properties,
                changed=frozenset(node.properties),
            )

        type_changed = prior.resource_type != node.type
        if not type_changed and property_hash(node.properties) == prior.property_hash:
            return None

        spec = self.types.get(node.type)
        if prior.properties or prior.property_hash == EMPTY_HASH:
            changed = changed_keys(node.properties, prior.properties)
        else:
            # record without stored properties: treated as an in-place update
            changed = frozenset()

        if type_changed or spec.requires_replace(changed):
            return ChangeEntry(
                name=node.name,
                action=ChangeAction.REPLACE,
                resource_type=node.type,
                properties=node.properties,
                prior=prior,
                changed=changed,
                ordering=spec.replace_ordering,
            )
        return ChangeEntry(
            name=node.name,
            action=ChangeAction.UPDATE,
            resource_type=node.type,
            properties=node.properties,
            prior=prior,
            changed=changed,
        )

    def _cascade(
        self,
        graph: ResourceGraph,
        node: ResourceNode,
        snapshot: StateSnapshot,
        changeset: Changeset,
    ) -> ChangeEntry | None:
        """Re-apply a dependent whose referenced dependency is being replaced."""
        current = changeset.get(node.name)
        if current is not None and current.action is not ChangeAction.UPDATE:
            return None

        triggers: list[str] = []
        referenced: set[str] = set()
        for target in sorted(graph.dependencies_of(node.name)):
            dependency = changeset.get(target)
            if dependency is None or dependency.action is not ChangeAction.REPLACE:
                continue
            edge = graph.edge(node.name, target)
            if edge is None or not edge.properties:
                continue
            triggers.append(target)
            referenced |= edge.properties
        if not triggers:
            return None

        spec = self.types.get(node.type)
        replace = spec.requires_replace(referenced)
        if current is not None and not replace:
            return None

        logger.debug("diff_cascaded", resource=node.name, replaced=triggers, replace=replace)
        changed = frozenset(referenced) | (current.changed if current else frozenset())
        return ChangeEntry(
            name=node.name,
            action=ChangeAction.REPLACE if replace else ChangeAction.UPDATE,
            resource_type=node.type,
            properties=node.properties,
            prior=snapshot[node.name],
            changed=changed,
            ordering=spec.replace_ordering if replace else None,
            triggered_by=triggers[0],
        )

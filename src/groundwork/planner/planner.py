"""
Planner/scheduler.

Expands a changeset into provider steps, links them with ordering edges and
layers them into waves with Kahn's algorithm.

Ordering rules:

- create/update of N waits for create/update of N's desired dependencies
- a destroy of N waits for destroys of resources that depended on N when
  last applied, and for create/update of those still declared that no
  longer reference N
- destroy-before-create: create of N waits for destroy_old of N
- create-before-destroy: destroy_old of N waits for create of N and for
  create/update of N's desired dependents
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from groundwork.catalog.types import ReplaceOrdering
from groundwork.core.errors import PlanningCycleError
from groundwork.diff.models import ChangeAction, ChangeEntry, Changeset
from groundwork.graph.builder import find_cycle
from groundwork.graph.models import ResourceGraph
from groundwork.planner.models import Plan, PlanStep, StepPhase, step_id
from groundwork.state.models import StateSnapshot

logger = structlog.get_logger()

_PHASES: dict[ChangeAction, tuple[StepPhase, ...]] = {
    ChangeAction.CREATE: (StepPhase.CREATE,),
    ChangeAction.UPDATE: (StepPhase.UPDATE,),
    ChangeAction.DELETE: (StepPhase.DESTROY,),
    ChangeAction.REPLACE: (StepPhase.CREATE, StepPhase.DESTROY_OLD),
}


class Planner:
    """Builds a :class:`Plan` from a changeset."""

    def plan(self, changeset: Changeset, graph: ResourceGraph, snapshot: StateSnapshot) -> Plan:
        """Expand, link and layer the changeset.

        Raises:
            PlanningCycleError: if the ordering constraints are cyclic
        """
        phases: dict[str, tuple[StepPhase, ...]] = {
            entry.name: _PHASES[entry.action] for entry in changeset
        }

        def apply_steps(name: str) -> set[str]:
            return {step_id(name, p) for p in phases.get(name, ()) if p.is_apply}

        def destroy_steps(name: str) -> set[str]:
            return {step_id(name, p) for p in phases.get(name, ()) if not p.is_apply}

        prior_dependents: dict[str, set[str]] = {}
        for record in snapshot.values():
            for dependency in record.dependencies:
                prior_dependents.setdefault(dependency, set()).add(record.name)

        requires: dict[str, set[str]] = {}
        meta: dict[str, tuple[ChangeEntry, StepPhase]] = {}
        for entry in changeset:
            for phase in phases[entry.name]:
                sid = step_id(entry.name, phase)
                meta[sid] = (entry, phase)
                requires[sid] = self._requirements(
                    entry,
                    phase,
                    graph,
                    prior_dependents.get(entry.name, set()),
                    apply_steps,
                    destroy_steps,
                )

        steps: dict[str, PlanStep] = {}
        for sid, reqs in requires.items():
            entry, phase = meta[sid]
            steps[sid] = PlanStep(
                name=entry.name,
                phase=phase,
                entry=entry,
                requires=frozenset(reqs),
                dependencies=frozenset(
                    graph.dependencies_of(entry.name) if entry.name in graph else ()
                ),
            )
        waves = self._layer(requires, key=lambda sid: (steps[sid].name, steps[sid].phase.value))
        plan = Plan(
            changeset=changeset,
            steps=steps,
            waves=[[steps[sid] for sid in wave] for wave in waves],
        )
        logger.debug("plan_built", steps=len(steps), waves=len(plan.waves))
        return plan

    @staticmethod
    def _requirements(
        entry: ChangeEntry,
        phase: StepPhase,
        graph: ResourceGraph,
        prior_dependents: set[str],
        apply_steps: Callable[[str], set[str]],
        destroy_steps: Callable[[str], set[str]],
    ) -> set[str]:
        name = entry.name
        required: set[str] = set()

        if phase.is_apply:
            for dependency in graph.dependencies_of(name):
                required |= apply_steps(dependency)
            if entry.ordering is ReplaceOrdering.DESTROY_BEFORE_CREATE:
                required.add(step_id(name, StepPhase.DESTROY_OLD))
            return required

        for dependent in prior_dependents:
            required |= destroy_steps(dependent)
            if dependent in graph and name not in graph.dependencies_of(dependent):
                required |= apply_steps(dependent)

        if entry.ordering is ReplaceOrdering.CREATE_BEFORE_DESTROY:
            required.add(step_id(name, StepPhase.CREATE))
            for dependent in graph.dependents_of(name):
                required |= apply_steps(dependent)

        required.discard(step_id(name, phase))
        return required

    @staticmethod
    def _layer(
        requires: dict[str, set[str]], key: Callable[[str], tuple[str, str]]
    ) -> list[list[str]]:
        """Kahn's algorithm, one wave per layer, steps sorted by (name, phase)."""
        remaining = {sid: len(reqs) for sid, reqs in requires.items()}
        dependents: dict[str, set[str]] = {sid: set() for sid in requires}
        for sid, reqs in requires.items():
            for req in reqs:
                dependents[req].add(sid)

        waves: list[list[str]] = []
        ready = sorted(
            (sid for sid, count in remaining.items() if count == 0), key=key
        )
        while ready:
            waves.append(ready)
            following: list[str] = []
            for sid in ready:
                del remaining[sid]
                for dependent in dependents[sid]:
                    remaining[dependent] -= 1
                    if remaining[dependent] == 0:
                        following.append(dependent)
            ready = sorted(following, key=key)

        if remaining:
            cycle = find_cycle({sid: sorted(requires[sid] & set(remaining)) for sid in remaining})
            raise PlanningCycleError(cycle or sorted(remaining))
        return waves

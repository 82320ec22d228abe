"""Plan models: steps, prerequisites and waves."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from groundwork.diff.models import ChangeEntry, Changeset


class StepPhase(str, Enum):
    """Provider call a step performs."""

    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"
    DESTROY_OLD = "destroy_old"

    @property
    def is_apply(self) -> bool:
        return self in (StepPhase.CREATE, StepPhase.UPDATE)


def step_id(name: str, phase: StepPhase) -> str:
    return f"{name}:{phase.value}"


@dataclass(frozen=True)
class PlanStep:
    """One provider call derived from a change entry.

    Attributes:
        name: Logical name
        phase: Which provider call to make
        entry: The change entry the step belongs to
        requires: Step ids that must succeed before this step runs
        dependencies: Desired dependencies of the resource, recorded in
            state after an apply so later deletes can be ordered
    """

    name: str
    phase: StepPhase
    entry: ChangeEntry
    requires: frozenset[str] = frozenset()
    dependencies: frozenset[str] = frozenset()

    @property
    def id(self) -> str:
        return step_id(self.name, self.phase)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "phase": self.phase.value,
            "action": self.entry.action.value,
            "resource_type": self.entry.resource_type,
            "requires": sorted(self.requires),
        }


@dataclass
class Plan:
    """Ordered execution plan.

    Waves run strictly one after another; steps inside a wave have no
    dependencies on each other and may run concurrently.
    """

    changeset: Changeset
    steps: dict[str, PlanStep] = field(default_factory=dict)
    waves: list[list[PlanStep]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.steps

    def wave_of(self, step: str) -> int:
        """Index of the wave holding ``step``."""
        for index, wave in enumerate(self.waves):
            if any(s.id == step for s in wave):
                return index
        raise KeyError(step)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.changeset.summary(),
            "changes": [entry.to_dict() for entry in self.changeset],
            "waves": [[s.to_dict() for s in wave] for wave in self.waves],
        }

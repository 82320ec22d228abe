"""Result types for plan execution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from groundwork.core.errors import ExitCode, GroundworkError


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


class RunStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    FATAL = "fatal"


@dataclass
class StepResult:
    """Outcome of one plan step."""

    step_id: str
    name: str
    phase: str
    status: StepStatus
    attempts: int = 0
    outputs: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_type: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is StepStatus.SUCCEEDED

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step_id,
            "name": self.name,
            "phase": self.phase,
            "status": self.status.value,
            "attempts": self.attempts,
            "outputs": self.outputs,
            "error": self.error,
            "error_type": self.error_type,
            "details": self.details,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class RunReport:
    """Result of applying a plan."""

    status: RunStatus
    steps: dict[str, StepResult] = field(default_factory=dict)
    summary: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    fatal_error: GroundworkError | None = None
    cancelled: bool = False
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """Whether every step succeeded."""
        return self.status is RunStatus.SUCCESS

    @property
    def failed(self) -> list[str]:
        """Logical names with a failed step."""
        return self._names(StepStatus.FAILED)

    @property
    def blocked(self) -> list[str]:
        """Logical names not attempted because a prerequisite did not succeed."""
        return self._names(StepStatus.BLOCKED)

    @property
    def exit_code(self) -> ExitCode:
        if self.status is RunStatus.FATAL:
            if self.fatal_error is not None:
                return self.fatal_error.exit_code
            return ExitCode.UNKNOWN_ERROR
        if self.cancelled:
            return ExitCode.INTERRUPTED
        if self.status is RunStatus.PARTIAL_FAILURE:
            return ExitCode.PARTIAL_FAILURE
        return ExitCode.SUCCESS

    def results_with(self, status: StepStatus) -> list[StepResult]:
        return [self.steps[sid] for sid in sorted(self.steps) if self.steps[sid].status is status]

    def _names(self, status: StepStatus) -> list[str]:
        return sorted({result.name for result in self.results_with(status)})

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "cancelled": self.cancelled,
            "summary": self.summary,
            "failed": self.failed,
            "blocked": self.blocked,
            "errors": self.errors,
            "duration_seconds": round(self.duration_seconds, 3),
            "steps": [self.steps[sid].to_dict() for sid in sorted(self.steps)],
        }


class ResultCollector:
    """Aggregates step results during a run."""

    def __init__(self, summary: dict[str, int] | None = None) -> None:
        self._steps: dict[str, StepResult] = {}
        self._errors: list[str] = []
        self._summary = dict(summary or {})
        self.fatal_error: GroundworkError | None = None

    def get(self, step_id: str) -> StepResult | None:
        return self._steps.get(step_id)

    def record(self, result: StepResult) -> None:
        """Record a step outcome."""
        self._steps[result.step_id] = result
        if result.status is StepStatus.FAILED and result.error:
            self._errors.append(f"{result.step_id}: {result.error}")

    def record_fatal(self, error: GroundworkError) -> None:
        """Record the error that ends the run. Only the first one is kept."""
        if self.fatal_error is None:
            self.fatal_error = error

    def finalize(self, duration: float) -> RunReport:
        """Return the final report with status and duration set."""
        if self.fatal_error is not None:
            status = RunStatus.FATAL
        elif all(result.succeeded for result in self._steps.values()):
            status = RunStatus.SUCCESS
        else:
            status = RunStatus.PARTIAL_FAILURE
        errors = list(self._errors)
        if self.fatal_error is not None:
            errors.insert(0, self.fatal_error.message)
        return RunReport(
            status=status,
            steps=dict(self._steps),
            summary=self._summary,
            errors=errors,
            fatal_error=self.fatal_error,
            cancelled=any(r.status is StepStatus.CANCELLED for r in self._steps.values()),
            duration_seconds=duration,
        )

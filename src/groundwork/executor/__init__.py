"""Executor: runs plan waves against a provider and records state."""

from groundwork.executor.executor import Executor
from groundwork.executor.results import (
    ResultCollector,
    RunReport,
    RunStatus,
    StepResult,
    StepStatus,
)

__all__ = [
    "Executor",
    "ResultCollector",
    "RunReport",
    "RunStatus",
    "StepResult",
    "StepStatus",
]

"""groundwork: declarative cloud infrastructure planning and apply."""

from groundwork.catalog import ReplaceOrdering, ResourceTypeSpec, TypeRegistry, aws_type_registry
from groundwork.config import Settings, get_settings
from groundwork.core.errors import (
    ConfigurationError,
    CycleError,
    DuplicateResourceError,
    ExitCode,
    GroundworkError,
    LookupFailedError,
    ManifestError,
    MissingReferenceError,
    PlanningCycleError,
    ProviderError,
    ProviderPermanentError,
    ProviderTransientError,
    RunCancelled,
    StateStoreError,
)
from groundwork.diff import ChangeAction, ChangeEntry, Changeset, DiffEngine
from groundwork.executor import Executor, RunReport, RunStatus, StepResult, StepStatus
from groundwork.graph import GraphBuilder, ResourceGraph, ResourceNode, build_graph
from groundwork.manifest import load_manifest, parse_manifest
from groundwork.orchestrator import Orchestrator, PlanResult
from groundwork.planner import Plan, Planner, PlanStep, StepPhase
from groundwork.providers import InMemoryProvider, create_provider, register_provider
from groundwork.state import FileStateStore, MemoryStateStore, StateRecord, open_state_store

__version__ = "0.1.0"

__all__ = [
    "ChangeAction",
    "ChangeEntry",
    "Changeset",
    "ConfigurationError",
    "CycleError",
    "DiffEngine",
    "DuplicateResourceError",
    "ExitCode",
    "Executor",
    "FileStateStore",
    "GraphBuilder",
    "GroundworkError",
    "InMemoryProvider",
    "LookupFailedError",
    "ManifestError",
    "MemoryStateStore",
    "MissingReferenceError",
    "Orchestrator",
    "Plan",
    "PlanResult",
    "PlanStep",
    "Planner",
    "PlanningCycleError",
    "ProviderError",
    "ProviderPermanentError",
    "ProviderTransientError",
    "ReplaceOrdering",
    "ResourceGraph",
    "ResourceNode",
    "ResourceTypeSpec",
    "RunCancelled",
    "RunReport",
    "RunStatus",
    "Settings",
    "StateRecord",
    "StateStoreError",
    "StepPhase",
    "StepResult",
    "StepStatus",
    "TypeRegistry",
    "__version__",
    "aws_type_registry",
    "build_graph",
    "create_provider",
    "get_settings",
    "load_manifest",
    "open_state_store",
    "parse_manifest",
    "register_provider",
]

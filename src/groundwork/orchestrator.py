"""
Orchestrator for the plan/apply workflow.

Wires the graph builder, diff engine, planner and executor together around
one provider and one state store.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from groundwork.catalog import TypeRegistry, aws_type_registry
from groundwork.config import Settings, get_settings
from groundwork.core.errors import (
    ConfigurationError,
    ExitCode,
    GroundworkError,
    ProviderError,
    StateStoreError,
)
from groundwork.diff.engine import DiffEngine
from groundwork.executor.executor import Executor
from groundwork.executor.results import ResultCollector, RunReport
from groundwork.graph.builder import GraphBuilder
from groundwork.graph.lookups import LookupResolver
from groundwork.graph.models import ResourceGraph, ResourceNode
from groundwork.logging import bind_context, clear_context
from groundwork.manifest import load_manifest
from groundwork.planner.models import Plan
from groundwork.planner.planner import Planner
from groundwork.providers.base import Provider
from groundwork.providers.registry import create_provider
from groundwork.state import open_state_store
from groundwork.state.models import StateSnapshot
from groundwork.state.store import StateStore

logger = structlog.get_logger()


@dataclass
class PlanResult:
    """Result of planning a set of declarations."""

    run_id: str
    plan: Plan | None = None
    graph: ResourceGraph | None = None
    snapshot: StateSnapshot = field(default_factory=dict)
    error: GroundworkError | None = None
    lookups_resolved: int = 0

    @property
    def success(self) -> bool:
        """Whether planning succeeded."""
        return self.error is None

    @property
    def has_changes(self) -> bool:
        return self.plan is not None and not self.plan.is_empty

    @property
    def errors(self) -> list[str]:
        return [self.error.message] if self.error else []

    @property
    def exit_code(self) -> ExitCode:
        return self.error.exit_code if self.error else ExitCode.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "run_id": self.run_id,
            "success": self.success,
            "errors": self.errors,
            "lookups_resolved": self.lookups_resolved,
        }
        if self.error is not None:
            data["error"] = {"type": type(self.error).__name__, "details": self.error.details}
        if self.plan is not None:
            data.update(self.plan.to_dict())
        return data


class Orchestrator:
    """Plans and applies declarations against one provider and state store."""

    def __init__(
        self,
        provider: Provider,
        store: StateStore,
        *,
        settings: Settings | None = None,
        types: TypeRegistry | None = None,
    ) -> None:
        self.provider = provider
        self.store = store
        self.settings = settings or get_settings()
        self.types = types or aws_type_registry()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> Orchestrator:
        """Create the provider and state store named in settings."""
        settings = settings or get_settings()
        provider = create_provider(settings.provider)
        return cls(provider, open_state_store(settings), settings=settings)

    async def plan(self, declarations: Iterable[ResourceNode]) -> PlanResult:
        """Build the graph, diff against state and schedule the changes.

        Configuration and state errors are returned on the result rather than
        raised; nothing has been applied at this point.
        """
        result = PlanResult(run_id=uuid.uuid4().hex[:12])
        bind_context(run_id=result.run_id)
        lookups = LookupResolver(
            self.provider,
            max_attempts=self.settings.max_attempts,
            backoff_initial=self.settings.backoff_initial,
            backoff_max=self.settings.backoff_max,
        )
        try:
            result.snapshot = await asyncio.to_thread(self.store.read_all)
            result.graph = await GraphBuilder(lookups).build(declarations)
            changeset = DiffEngine(self.types).diff(result.graph, result.snapshot)
            result.plan = Planner().plan(changeset, result.graph, result.snapshot)
        except (ConfigurationError, StateStoreError) as exc:
            logger.error(
                "plan_failed",
                error_type=type(exc).__name__,
                message=exc.message,
                **exc.details,
            )
            result.error = exc
        finally:
            result.lookups_resolved = lookups.calls

        if result.plan is not None:
            logger.info(
                "plan_completed",
                steps=len(result.plan.steps),
                waves=len(result.plan.waves),
                **result.plan.changeset.summary(),
            )
        return result

    async def plan_manifest(self, manifest: str | Path) -> PlanResult:
        return await self.plan(load_manifest(manifest))

    async def apply(
        self,
        declarations: Iterable[ResourceNode],
        *,
        cancel: asyncio.Event | None = None,
    ) -> RunReport:
        """Plan, then execute the plan. A planning error yields a fatal report."""
        planned = await self.plan(declarations)
        try:
            if planned.error is not None or planned.plan is None:
                collector = ResultCollector()
                collector.record_fatal(
                    planned.error or GroundworkError("Planning produced no plan")
                )
                return collector.finalize(0.0)

            if not planned.plan.is_empty:
                unreachable = await self._check_provider_health()
                if unreachable is not None:
                    collector = ResultCollector(planned.plan.changeset.summary())
                    collector.record_fatal(unreachable)
                    return collector.finalize(0.0)

            executor = Executor.from_settings(self.provider, self.store, self.settings)
            return await executor.run(planned.plan, snapshot=planned.snapshot, cancel=cancel)
        finally:
            clear_context()

    async def _check_provider_health(self) -> ProviderError | None:
        """Return an error when the provider cannot take changes."""
        health = await self.provider.health_check()
        if health.status == "healthy":
            return None
        if health.status == "degraded":
            logger.warning("provider_degraded", provider=self.provider.name, details=health.details)
            return None
        logger.error("provider_unreachable", provider=self.provider.name, details=health.details)
        return ProviderError(
            f"Provider '{self.provider.name}' is unreachable",
            details={"provider": self.provider.name, "reason": health.details},
        )

    async def apply_manifest(
        self, manifest: str | Path, *, cancel: asyncio.Event | None = None
    ) -> RunReport:
        return await self.apply(load_manifest(manifest), cancel=cancel)

"""
Plan executor.

Runs waves one after another. Steps inside a wave run concurrently, bounded
by a semaphore. Transient provider errors are retried with exponential
backoff; every success is written to the state store before the step counts
as complete.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from groundwork.catalog.types import ReplaceOrdering
from groundwork.config.settings import Settings
from groundwork.core.errors import (
    GroundworkError,
    ProviderPermanentError,
    ProviderTransientError,
    RunCancelled,
    StateStoreError,
)
from groundwork.core.values import property_hash, thaw
from groundwork.executor.results import ResultCollector, RunReport, StepResult, StepStatus
from groundwork.graph.references import resolve_references
from groundwork.planner.models import Plan, PlanStep, StepPhase
from groundwork.providers.base import Provider
from groundwork.state.models import StateRecord, StateSnapshot
from groundwork.state.store import StateStore

logger = structlog.get_logger()


class _RunContext:
    """Mutable state shared by the steps of one run."""

    def __init__(self, snapshot: StateSnapshot, cancel: asyncio.Event, summary: dict[str, int]):
        self.outputs: dict[str, dict[str, Any]] = {
            name: dict(record.outputs) for name, record in snapshot.items()
        }
        self.cancel = cancel
        self.collector = ResultCollector(summary)


class Executor:
    """Applies a :class:`Plan` through a provider and records results in state."""

    def __init__(
        self,
        provider: Provider,
        store: StateStore,
        *,
        max_concurrency: int = 10,
        max_attempts: int = 5,
        backoff_initial: float = 1.0,
        backoff_max: float = 30.0,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.provider = provider
        self.store = store
        self.max_concurrency = max_concurrency
        self.max_attempts = max_attempts
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max

    @classmethod
    def from_settings(cls, provider: Provider, store: StateStore, settings: Settings) -> Executor:
        return cls(
            provider,
            store,
            max_concurrency=settings.max_concurrency,
            max_attempts=settings.max_attempts,
            backoff_initial=settings.backoff_initial,
            backoff_max=settings.backoff_max,
        )

    async def run(
        self,
        plan: Plan,
        *,
        snapshot: StateSnapshot | None = None,
        cancel: asyncio.Event | None = None,
    ) -> RunReport:
        """Execute every wave of ``plan``.

        Args:
            plan: Plan produced by the planner
            snapshot: State the plan was computed from; read from the store
                when omitted. Its outputs seed reference resolution.
            cancel: Run-level cancellation signal

        Returns:
            RunReport with one StepResult per planned step
        """
        start = time.monotonic()
        if snapshot is None:
            snapshot = await asyncio.to_thread(self.store.read_all)
        ctx = _RunContext(snapshot, cancel or asyncio.Event(), plan.changeset.summary())
        semaphore = asyncio.Semaphore(self.max_concurrency)

        logger.info("run_started", steps=len(plan.steps), waves=len(plan.waves))
        for index, wave in enumerate(plan.waves):
            if ctx.cancel.is_set() or ctx.collector.fatal_error is not None:
                self._skip(wave, ctx)
                continue
            logger.info("wave_started", wave=index, steps=[step.id for step in wave])
            await asyncio.gather(*(self._execute(step, semaphore, ctx) for step in wave))

        report = ctx.collector.finalize(time.monotonic() - start)
        logger.info(
            "run_finished",
            status=report.status.value,
            failed=report.failed,
            blocked=report.blocked,
            cancelled=report.cancelled,
            duration_seconds=round(report.duration_seconds, 3),
        )
        return report

    def _skip(self, wave: list[PlanStep], ctx: _RunContext) -> None:
        status = StepStatus.CANCELLED if ctx.cancel.is_set() else StepStatus.SKIPPED
        for step in wave:
            ctx.collector.record(_result(step, status))

    async def _execute(
        self, step: PlanStep, semaphore: asyncio.Semaphore, ctx: _RunContext
    ) -> None:
        collector = ctx.collector
        unmet = sorted(req for req in step.requires if not _succeeded(collector.get(req)))
        if unmet:
            logger.warning("step_blocked", step=step.id, blocked_by=unmet)
            collector.record(_result(step, StepStatus.BLOCKED, details={"blocked_by": unmet}))
            return

        async with semaphore:
            if ctx.cancel.is_set():
                collector.record(_result(step, StepStatus.CANCELLED))
                return
            if collector.fatal_error is not None:
                collector.record(_result(step, StepStatus.SKIPPED))
                return

            started = time.monotonic()
            attempts = 0

            async def call() -> dict[str, Any]:
                nonlocal attempts
                attempts += 1
                return await self._call_provider(step, ctx)

            logger.info("step_started", step=step.id, resource_type=step.entry.resource_type)
            try:
                outputs = await self._with_retries(step, call, ctx.cancel)
            except RunCancelled:
                logger.warning("step_cancelled", step=step.id, attempts=attempts)
                collector.record(_result(step, StepStatus.CANCELLED, attempts=attempts))
                return
            except GroundworkError as exc:
                logger.error(
                    "step_failed",
                    step=step.id,
                    error_type=type(exc).__name__,
                    error=exc.message,
                    attempts=attempts,
                )
                collector.record(
                    _result(
                        step,
                        StepStatus.FAILED,
                        attempts=attempts,
                        error=exc.message,
                        error_type=type(exc).__name__,
                        details={**self._old_instance(step), **exc.details},
                        duration=time.monotonic() - started,
                    )
                )
                return
            except Exception as exc:
                logger.exception("step_failed", step=step.id, error_type=type(exc).__name__)
                collector.record(
                    _result(
                        step,
                        StepStatus.FAILED,
                        attempts=attempts,
                        error=str(exc),
                        error_type=type(exc).__name__,
                        details=self._old_instance(step),
                        duration=time.monotonic() - started,
                    )
                )
                return

            try:
                await asyncio.to_thread(self._record_state, step, outputs)
            except StateStoreError as exc:
                logger.error("state_write_failed", step=step.id, error=exc.message)
                collector.record_fatal(exc)
                collector.record(
                    _result(
                        step,
                        StepStatus.FAILED,
                        attempts=attempts,
                        outputs=outputs,
                        error=exc.message,
                        error_type=type(exc).__name__,
                        details=exc.details,
                        duration=time.monotonic() - started,
                    )
                )
                return

            self._publish_outputs(step, outputs, ctx)
            logger.info("step_succeeded", step=step.id, attempts=attempts)
            collector.record(
                _result(
                    step,
                    StepStatus.SUCCEEDED,
                    attempts=attempts,
                    outputs=outputs,
                    duration=time.monotonic() - started,
                )
            )

    async def _with_retries(
        self,
        step: PlanStep,
        call: Callable[[], Awaitable[dict[str, Any]]],
        cancel: asyncio.Event,
    ) -> dict[str, Any]:
        async def sleep(seconds: float) -> None:
            if cancel.is_set():
                raise RunCancelled("Run cancelled during retry backoff")
            if seconds <= 0:
                return
            try:
                await asyncio.wait_for(cancel.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                return
            raise RunCancelled("Run cancelled during retry backoff")

        def before_sleep(retry_state: Any) -> None:
            exc = retry_state.outcome.exception()
            logger.warning(
                "step_retrying",
                step=step.id,
                attempt=retry_state.attempt_number,
                wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
                error=str(exc),
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ProviderTransientError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_initial, max=self.backoff_max),
            sleep=sleep,
            before_sleep=before_sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if cancel.is_set():
                    raise RunCancelled("Run cancelled")
                return await call()
        raise AssertionError("unreachable")  # pragma: no cover

    async def _call_provider(self, step: PlanStep, ctx: _RunContext) -> dict[str, Any]:
        entry = step.entry
        if step.phase is StepPhase.CREATE or step.phase is StepPhase.UPDATE:
            properties = resolve_references(thaw(entry.properties), ctx.outputs)
            identifier = entry.prior.identifier if step.phase is StepPhase.UPDATE else None
            outputs = await self.provider.apply(
                entry.resource_type,
                step.phase.value,
                properties,
                identifier=identifier,
            )
            if "id" not in outputs:
                raise ProviderPermanentError(
                    "Provider returned no identifier",
                    details={"resource": entry.name, "resource_type": entry.resource_type},
                )
            return outputs

        prior = entry.prior
        await self.provider.destroy(prior.resource_type, prior.identifier)
        return {}

    def _record_state(self, step: PlanStep, outputs: dict[str, Any]) -> None:
        entry = step.entry
        if step.phase.is_apply:
            self.store.upsert(
                StateRecord(
                    name=entry.name,
                    resource_type=entry.resource_type,
                    identifier=str(outputs["id"]),
                    property_hash=property_hash(entry.properties),
                    properties=thaw(entry.properties),
                    outputs=outputs,
                    dependencies=sorted(step.dependencies),
                )
            )
        elif step.phase is StepPhase.DESTROY:
            self.store.delete(entry.name)
        elif entry.ordering is ReplaceOrdering.DESTROY_BEFORE_CREATE:
            self.store.delete(entry.name)

    @staticmethod
    def _publish_outputs(step: PlanStep, outputs: dict[str, Any], ctx: _RunContext) -> None:
        if step.phase.is_apply:
            ctx.outputs[step.name] = outputs
        elif step.phase is StepPhase.DESTROY or (
            step.entry.ordering is ReplaceOrdering.DESTROY_BEFORE_CREATE
        ):
            ctx.outputs.pop(step.name, None)

    @staticmethod
    def _old_instance(step: PlanStep) -> dict[str, Any]:
        if step.phase is StepPhase.DESTROY_OLD and step.entry.prior is not None:
            return {"old_identifier": step.entry.prior.identifier}
        return {}


def _succeeded(result: StepResult | None) -> bool:
    return result is not None and result.succeeded


def _result(
    step: PlanStep,
    status: StepStatus,
    *,
    attempts: int = 0,
    outputs: dict[str, Any] | None = None,
    error: str | None = None,
    error_type: str | None = None,
    details: dict[str, Any] | None = None,
    duration: float = 0.0,
) -> StepResult:
    return StepResult(
        step_id=step.id,
        name=step.name,
        phase=step.phase.value,
        status=status,
        attempts=attempts,
        outputs=outputs or {},
        error=error,
        error_type=error_type,
        details=details or {},
        duration_seconds=duration,
    )

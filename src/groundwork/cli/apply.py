"""
CLI command for applying declared infrastructure.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import signal

from rich.markup import escape

from groundwork.cli.ux import console, error, print_table, warning
from groundwork.config import Settings
from groundwork.core.errors import format_error_message, main_with_error_handling
from groundwork.executor.results import RunReport, RunStatus, StepStatus
from groundwork.orchestrator import Orchestrator

STATUS_STYLES = {
    StepStatus.SUCCEEDED: "[success]✓ succeeded[/success]",
    StepStatus.FAILED: "[error]✗ failed[/error]",
    StepStatus.BLOCKED: "[warning]⊘ blocked[/warning]",
    StepStatus.CANCELLED: "[warning]⊘ cancelled[/warning]",
    StepStatus.SKIPPED: "[muted]- skipped[/muted]",
}


def print_apply_summary(report: RunReport, verbose: bool = False) -> None:
    """Print apply summary with rich formatting."""
    console.print()

    if report.steps:
        rows = []
        for result in report.steps.values():
            detail = result.error or ""
            if result.status is StepStatus.BLOCKED:
                detail = "waiting on " + ", ".join(result.details.get("blocked_by", []))
            if not verbose and len(detail) > 80:
                detail = detail[:77] + "..."
            rows.append(
                [
                    STATUS_STYLES[result.status],
                    escape(result.step_id),
                    str(result.attempts),
                    escape(detail),
                ]
            )
        print_table(None, ["Status", "Step", "Attempts", "Details"], rows)
        console.print()

    duration = f" in {report.duration_seconds:.1f}s" if report.duration_seconds > 0 else ""
    succeeded = len(report.results_with(StepStatus.SUCCEEDED))
    if report.status is RunStatus.SUCCESS:
        if report.steps:
            console.print(f"[bold green]Applied {succeeded} steps{duration}[/bold green]")
        else:
            console.print("[bold green]No changes. Infrastructure is up to date.[/bold green]")
    elif report.status is RunStatus.PARTIAL_FAILURE:
        label = "Cancelled" if report.cancelled else "Partially applied"
        warning(f"{label}: {succeeded} of {len(report.steps)} steps succeeded{duration}")
        if report.failed:
            console.print(f"  [error]failed:[/error] {escape(', '.join(report.failed))}")
        if report.blocked:
            console.print(f"  [warning]blocked:[/warning] {escape(', '.join(report.blocked))}")
    else:
        error("Apply aborted")
        errors = list(report.errors)
        if report.fatal_error is not None:
            errors[0] = format_error_message(report.fatal_error)
        for err in errors:
            console.print(f"   [error]•[/error] {escape(err)}")

    console.print()


def print_apply_json(report: RunReport) -> None:
    """Print apply result in JSON format."""
    print(json.dumps(report.to_dict(), indent=2, default=str))


async def _apply_with_interrupts(orchestrator: Orchestrator, manifest: str) -> RunReport:
    """Apply, turning SIGINT into a graceful run cancellation."""
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    # add_signal_handler is unavailable on Windows event loops
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    try:
        return await orchestrator.apply_manifest(manifest, cancel=cancel)
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)


@main_with_error_handling()
def apply_command(
    manifest: str,
    output_format: str = "text",
    verbose: bool = False,
    settings: Settings | None = None,
) -> int:
    """
    Apply the manifest: create, update, replace and delete resources.

    Args:
        manifest: Path to the manifest file
        output_format: Output format (text, json)
        verbose: Show full error messages
        settings: Settings with command-line overrides applied

    Returns:
        Exit code (0 success, 2 partial failure, 10 configuration error,
        13 state store error, 130 interrupted)
    """
    orchestrator = Orchestrator.from_settings(settings)
    report = asyncio.run(_apply_with_interrupts(orchestrator, manifest))

    if output_format == "json":
        print_apply_json(report)
    else:
        print_apply_summary(report, verbose=verbose)

    return int(report.exit_code)

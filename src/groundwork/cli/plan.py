"""
CLI command for planning (dry-run) changes to declared infrastructure.
"""

from __future__ import annotations

import asyncio
import json

from rich.markup import escape

from groundwork.cli.ux import console, error, header, print_table, success
from groundwork.config import Settings
from groundwork.core.errors import format_error_message, main_with_error_handling
from groundwork.diff.models import ChangeEntry
from groundwork.logging import clear_context
from groundwork.orchestrator import Orchestrator, PlanResult

ACTION_SYMBOLS = {
    "create": "+",
    "update": "~",
    "replace": "-/+",
    "delete": "-",
}


def describe_entry(entry: ChangeEntry) -> str:
    """One-line explanation of why an entry is in the plan."""
    parts = []
    if entry.triggered_by:
        parts.append(f"{entry.triggered_by} is replaced")
    if entry.changed and entry.action.value != "create":
        parts.append("changed: " + ", ".join(sorted(entry.changed)))
    if entry.ordering is not None:
        parts.append(entry.ordering.value.replace("_", " "))
    if entry.prior is not None and entry.action.value in ("delete", "replace"):
        parts.append(f"id {entry.prior.identifier}")
    return "; ".join(parts)


def print_plan_summary(result: PlanResult, manifest: str) -> None:
    """Print plan summary."""
    header(f"Plan: {manifest}")
    console.print()

    if result.error is not None:
        error(f"{type(result.error).__name__}:")
        console.print(f"   [error]•[/error] {escape(format_error_message(result.error))}")
        console.print()
        return

    plan = result.plan
    if plan is None or plan.is_empty:
        success("No changes. Infrastructure matches the manifest.")
        console.print()
        return

    rows = []
    for entry in plan.changeset:
        action = entry.action.value
        rows.append(
            [
                f"[{action}]{ACTION_SYMBOLS[action]} {action}[/{action}]",
                escape(entry.name),
                escape(entry.resource_type),
                escape(describe_entry(entry)),
            ]
        )
    print_table(None, ["Action", "Resource", "Type", "Details"], rows)
    console.print()

    console.print("[bold]Execution order:[/bold]")
    for index, wave in enumerate(plan.waves, 1):
        steps = ", ".join(escape(step.id) for step in wave)
        console.print(f"  [muted]wave {index}[/muted]  {steps}")
    console.print()

    counts = plan.changeset.summary()
    console.print(
        f"[bold]Plan:[/bold] {counts['create']} to create, {counts['update']} to update, "
        f"{counts['replace']} to replace, {counts['delete']} to delete."
    )
    console.print()
    console.print("[muted]To apply these changes, run:[/muted]")
    console.print(f"  [info]groundwork apply {escape(manifest)}[/info]")
    console.print()


def print_plan_json(result: PlanResult) -> None:
    """Print plan in JSON format."""
    print(json.dumps(result.to_dict(), indent=2, default=str))


@main_with_error_handling()
def plan_command(
    manifest: str,
    output_format: str = "text",
    settings: Settings | None = None,
) -> int:
    """
    Preview the changes an apply would make.

    Args:
        manifest: Path to the manifest file
        output_format: Output format (text, json)
        settings: Settings with command-line overrides applied

    Returns:
        Exit code (0 for success, 10 for configuration errors, 13 for state errors)
    """
    orchestrator = Orchestrator.from_settings(settings)
    try:
        result = asyncio.run(orchestrator.plan_manifest(manifest))
    finally:
        clear_context()

    if output_format == "json":
        print_plan_json(result)
    else:
        print_plan_summary(result, manifest)

    return int(result.exit_code)

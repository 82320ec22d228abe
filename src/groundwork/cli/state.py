"""
CLI commands for inspecting recorded state.
"""

from __future__ import annotations

import json

from rich.markup import escape

from groundwork.cli.ux import console, header, info, print_key_value, print_table
from groundwork.config import Settings, get_settings
from groundwork.core.errors import ConfigurationError, main_with_error_handling
from groundwork.state import open_state_store


@main_with_error_handling()
def state_list_command(output_format: str = "text", settings: Settings | None = None) -> int:
    """List every recorded resource."""
    store = open_state_store(settings or get_settings())
    records = store.read_all()

    if output_format == "json":
        print(json.dumps([records[name].to_dict() for name in sorted(records)], indent=2))
        return 0

    if not records:
        info("No resources recorded in state")
        return 0

    rows = [
        [
            escape(record.name),
            escape(record.resource_type),
            escape(record.identifier),
            record.updated_at.strftime("%Y-%m-%d %H:%M:%S"),
        ]
        for record in (records[name] for name in sorted(records))
    ]
    print_table(
        f"{len(records)} resources",
        ["Name", "Type", "Identifier", "Updated (UTC)"],
        rows,
    )
    return 0


@main_with_error_handling()
def state_show_command(
    name: str, output_format: str = "text", settings: Settings | None = None
) -> int:
    """Show one recorded resource with its properties and outputs."""
    store = open_state_store(settings or get_settings())
    record = store.read_all().get(name)
    if record is None:
        raise ConfigurationError(f"No state recorded for '{name}'", details={"resource": name})

    if output_format == "json":
        print(json.dumps(record.to_dict(), indent=2))
        return 0

    header(record.name)
    print_key_value(
        {
            "type": escape(record.resource_type),
            "identifier": escape(record.identifier),
            "property hash": record.property_hash,
            "depends on": escape(", ".join(record.dependencies) or "-"),
            "updated": record.updated_at.isoformat(),
        }
    )
    print_key_value(
        {key: escape(json.dumps(value)) for key, value in sorted(record.properties.items())},
        title="Properties",
    )
    print_key_value(
        {key: escape(json.dumps(value)) for key, value in sorted(record.outputs.items())},
        title="Outputs",
    )
    console.print()
    return 0

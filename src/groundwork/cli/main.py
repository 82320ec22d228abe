"""
groundwork command-line entry point.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError
from rich.markup import escape

from groundwork import __version__
from groundwork.cli.ux import error
from groundwork.config import Settings
from groundwork.core.errors import ExitCode
from groundwork.logging import configure_logging


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--state",
        help="State file path (file backend) or database URL (sqlite backend)",
    )
    parser.add_argument(
        "--state-backend",
        choices=["file", "sqlite", "memory"],
        help="State store backend",
    )
    parser.add_argument("--output", choices=["text", "json"], default="text", help="Output format")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("manifest", help="Path to manifest YAML file")
    parser.add_argument("--provider", help="Registered provider name")
    parser.add_argument("--concurrency", type=int, help="Maximum concurrent provider calls")
    parser.add_argument(
        "--max-attempts", type=int, help="Attempts per step for transient provider errors"
    )
    _add_common_options(parser)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="groundwork",
        description="Plan and apply declared cloud infrastructure",
    )
    parser.add_argument("--version", action="version", version=f"groundwork {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    plan_parser = subparsers.add_parser("plan", help="Preview changes (dry-run)")
    _add_run_options(plan_parser)

    apply_parser = subparsers.add_parser("apply", help="Apply the manifest")
    _add_run_options(apply_parser)
    apply_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show full error messages"
    )

    state_parser = subparsers.add_parser("state", help="Inspect recorded state")
    state_subparsers = state_parser.add_subparsers(dest="state_command")
    list_parser = state_subparsers.add_parser("list", help="List recorded resources")
    _add_common_options(list_parser)
    show_parser = state_subparsers.add_parser("show", help="Show one recorded resource")
    show_parser.add_argument("name", help="Logical resource name")
    _add_common_options(show_parser)

    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Settings from environment, overridden by command-line flags."""
    overrides: dict[str, Any] = {}
    backend = getattr(args, "state_backend", None)
    if backend:
        overrides["state_backend"] = backend
    state = getattr(args, "state", None)
    if state:
        if (backend or Settings().state_backend) == "sqlite":
            overrides["database_url"] = state if "://" in state else f"sqlite:///{state}"
        else:
            overrides["state_path"] = state
    for flag, field_name in (
        ("provider", "provider"),
        ("concurrency", "max_concurrency"),
        ("max_attempts", "max_attempts"),
        ("log_level", "log_level"),
    ):
        value = getattr(args, flag, None)
        if value is not None:
            overrides[field_name] = value
    return Settings(**overrides)


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None or (args.command == "state" and args.state_command is None):
        parser.print_help()
        sys.exit(0)

    try:
        settings = settings_from_args(args)
    except ValidationError as exc:
        error(f"Invalid settings: {escape(str(exc))}")
        sys.exit(ExitCode.CONFIG_ERROR)
    configure_logging(settings.log_level)

    if args.command == "plan":
        from groundwork.cli.plan import plan_command

        sys.exit(plan_command(args.manifest, output_format=args.output, settings=settings))

    if args.command == "apply":
        from groundwork.cli.apply import apply_command

        sys.exit(
            apply_command(
                args.manifest,
                output_format=args.output,
                verbose=args.verbose,
                settings=settings,
            )
        )

    from groundwork.cli.state import state_list_command, state_show_command

    if args.state_command == "list":
        sys.exit(state_list_command(output_format=args.output, settings=settings))
    sys.exit(state_show_command(args.name, output_format=args.output, settings=settings))


if __name__ == "__main__":
    main()

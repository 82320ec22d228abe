"""
Unified error handling for groundwork.

This module provides the error taxonomy shared by the graph builder, planner,
executor and state store, plus the exit-code mapping used by CLI commands.

Exit Codes:
- 0: Success
- 2: Partial failure (some changes failed or were blocked)
- 10: Configuration error (cycle, missing reference, bad manifest)
- 11: Provider error (external service failure)
- 13: State store error
- 127: Unknown/internal error
- 130: Interrupted
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, Sequence, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    PARTIAL_FAILURE = 2
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    STATE_ERROR = 13
    UNKNOWN_ERROR = 127
    INTERRUPTED = 130


class GroundworkError(Exception):
    """Base exception for groundwork errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(GroundworkError):
    """Raised for declaration/graph errors. Fatal: no changes are applied."""

    exit_code = ExitCode.CONFIG_ERROR


class ManifestError(ConfigurationError):
    """Raised when a declaration manifest cannot be read or is malformed."""


class DuplicateResourceError(ConfigurationError):
    """Raised when two declarations share a logical name."""

    def __init__(self, name: str):
        super().__init__(f"Duplicate resource name: {name}", details={"resource": name})
        self.name = name


class MissingReferenceError(ConfigurationError):
    """Raised when a declaration references a logical name that does not exist."""

    def __init__(self, resource: str, missing: str):
        super().__init__(
            f"Resource '{resource}' references unknown resource '{missing}'",
            details={"resource": resource, "missing": missing},
        )
        self.resource = resource
        self.missing = missing


class CycleError(ConfigurationError):
    """Raised when resource dependencies form a cycle."""

    prefix = "Dependency cycle detected"

    def __init__(self, cycle: Sequence[str]):
        path = " -> ".join(list(cycle) + [cycle[0]]) if cycle else ""
        super().__init__(f"{self.prefix}: {path}", details={"cycle": list(cycle)})
        self.cycle = list(cycle)


class PlanningCycleError(CycleError):
    """Raised when replace ordering constraints make the step graph cyclic."""

    prefix = "Replacement ordering cannot be satisfied"


class LookupFailedError(ConfigurationError):
    """Raised when an external lookup (data source) cannot be resolved."""


class ProviderError(GroundworkError):
    """Raised when the provider collaborator fails."""

    exit_code = ExitCode.PROVIDER_ERROR


class ProviderTransientError(ProviderError):
    """Throttling or eventual-consistency failure. Retried with backoff."""


class ProviderPermanentError(ProviderError):
    """Invalid property, permission denied, etc. Never retried."""


class StateStoreError(GroundworkError):
    """Raised when persisting or reading state fails. Fatal for the run."""

    exit_code = ExitCode.STATE_ERROR


class RunCancelled(GroundworkError):
    """Raised inside a step when the run-level cancellation signal is set."""

    exit_code = ExitCode.INTERRUPTED


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that provides unified error handling.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Exit codes:
        - GroundworkError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130
        - Other exceptions: Returns 127
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except GroundworkError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return ExitCode.INTERRUPTED
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=int(ExitCode.UNKNOWN_ERROR),
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: GroundworkError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg

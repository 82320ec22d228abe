"""Core modules for groundwork - centralized definitions and utilities."""

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
    format_error_message,
    main_with_error_handling,
)
from groundwork.core.values import canonical_json, freeze, property_hash, thaw

__all__ = [
    # Errors
    "ExitCode",
    "GroundworkError",
    "ConfigurationError",
    "ManifestError",
    "DuplicateResourceError",
    "MissingReferenceError",
    "CycleError",
    "PlanningCycleError",
    "LookupFailedError",
    "ProviderError",
    "ProviderTransientError",
    "ProviderPermanentError",
    "StateStoreError",
    "RunCancelled",
    "main_with_error_handling",
    "format_error_message",
    # Values
    "canonical_json",
    "property_hash",
    "freeze",
    "thaw",
]

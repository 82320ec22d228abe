"""
Output references inside declared properties.

A reference is written as ``${<logical-name>.<attribute>}``. The attribute may
be a dotted path into nested outputs (``${lb.listeners.0.arn}``). A string that
is exactly one reference resolves to the raw output value; references embedded
in longer strings are interpolated as text.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from groundwork.core.errors import ConfigurationError

REFERENCE_PATTERN = re.compile(r"\$\{([A-Za-z0-9_-]+)\.([A-Za-z0-9_.-]+)\}")
LOOKUP_KEY = "$lookup"


class ReferenceResolutionError(ConfigurationError):
    """Raised when a referenced output attribute is not available."""


@dataclass(frozen=True, order=True)
class Reference:
    """A pointer to an output attribute of another resource."""

    resource: str
    attribute: str

    def __str__(self) -> str:
        return f"${{{self.resource}.{self.attribute}}}"


def iter_references(value: Any) -> Iterator[Reference]:
    """Yield every reference found anywhere inside ``value``."""
    if isinstance(value, str):
        for match in REFERENCE_PATTERN.finditer(value):
            yield Reference(match.group(1), match.group(2))
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


def collect_references(properties: Mapping[str, Any]) -> dict[str, set[Reference]]:
    """Map each top-level property key to the references it contains."""
    found: dict[str, set[Reference]] = {}
    for key, value in properties.items():
        refs = set(iter_references(value))
        if refs:
            found[key] = refs
    return found


def is_lookup(value: Any) -> bool:
    """True for a ``{"$lookup": {...}}`` data-source value."""
    return isinstance(value, Mapping) and len(value) == 1 and LOOKUP_KEY in value


def resolve_references(value: Any, outputs: Mapping[str, Mapping[str, Any]]) -> Any:
    """Substitute references in ``value`` using per-resource ``outputs``.

    Raises:
        ReferenceResolutionError: if a referenced resource or attribute is missing
    """
    if isinstance(value, str):
        whole = REFERENCE_PATTERN.fullmatch(value)
        if whole:
            return _lookup_output(Reference(whole.group(1), whole.group(2)), outputs)
        return REFERENCE_PATTERN.sub(
            lambda m: str(_lookup_output(Reference(m.group(1), m.group(2)), outputs)),
            value,
        )
    if isinstance(value, Mapping):
        return {k: resolve_references(v, outputs) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_references(v, outputs) for v in value]
    return value


def _lookup_output(ref: Reference, outputs: Mapping[str, Mapping[str, Any]]) -> Any:
    if ref.resource not in outputs:
        raise ReferenceResolutionError(
            f"No outputs recorded for '{ref.resource}'",
            details={"reference": str(ref)},
        )
    current: Any = outputs[ref.resource]
    for part in ref.attribute.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            raise ReferenceResolutionError(
                f"Output attribute '{ref.attribute}' not found on '{ref.resource}'",
                details={"reference": str(ref)},
            )
    return current

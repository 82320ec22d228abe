"""
Helpers for declared property values.

Property maps are deep-frozen once a node is declared so a plan cannot be
mutated while it runs, and hashed through a canonical JSON encoding so the
same declaration always produces the same property hash.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any


def freeze(value: Any) -> Any:
    """Return a read-only deep copy of a JSON-like value."""
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of :func:`freeze`: plain dicts and lists, safe to serialize."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(v) for v in value]
    return value


def canonical_json(value: Any) -> str:
    """Encode a value as JSON with sorted keys and no insignificant whitespace."""
    return json.dumps(thaw(value), sort_keys=True, separators=(",", ":"), default=str)


def property_hash(properties: Mapping[str, Any]) -> str:
    """SHA-256 of the canonical encoding of a property map."""
    return hashlib.sha256(canonical_json(properties).encode("utf-8")).hexdigest()

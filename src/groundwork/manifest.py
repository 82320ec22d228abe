"""
Declaration manifest loader.

Reads the YAML manifest describing the desired resources.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml

from groundwork.core.errors import ManifestError
from groundwork.graph.models import ResourceNode

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
TYPE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+:[A-Za-z0-9_./-]+$")


def load_manifest(file_path: str | Path) -> list[ResourceNode]:
    """
    Load resource declarations from a YAML manifest.

    Expected structure:
        resources:
          - name: network
            type: aws:ec2/vpc
            properties:
              cidr_block: 10.0.0.0/16
          - name: app-subnet
            type: aws:ec2/subnet
            properties:
              vpc_id: ${network.id}
            depends_on: [network]

    Args:
        file_path: Path to the manifest file

    Returns:
        Declarations in file order

    Raises:
        ManifestError: If the file is missing, not valid YAML, or malformed
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise ManifestError(f"Manifest not found: {file_path}", details={"path": str(file_path)})

    try:
        with open(file_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ManifestError(
            f"Invalid YAML in {file_path}: {e}", details={"path": str(file_path)}
        ) from e

    return parse_manifest(data, source=str(file_path))


def parse_manifest(data: Any, source: str = "<manifest>") -> list[ResourceNode]:
    """Validate an already-parsed manifest document."""
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest must be a YAML mapping: {source}")

    resources = data.get("resources")
    if resources is None:
        raise ManifestError(f"Manifest has no 'resources' section: {source}")
    if not isinstance(resources, list):
        raise ManifestError(f"'resources' must be a list: {source}")

    return [_parse_resource(item, index, source) for index, item in enumerate(resources)]


def _parse_resource(item: Any, index: int, source: str) -> ResourceNode:
    where = {"source": source, "index": index}
    if not isinstance(item, dict):
        raise ManifestError(f"Resource #{index} must be a mapping", details=where)

    unknown = set(item) - {"name", "type", "properties", "depends_on"}
    if unknown:
        raise ManifestError(
            f"Resource #{index} has unknown fields: {', '.join(sorted(unknown))}",
            details=where,
        )

    name = item.get("name")
    if not isinstance(name, str) or not NAME_PATTERN.match(name):
        raise ManifestError(
            f"Resource #{index} needs a name of letters, digits, '-' or '_'",
            details={**where, "name": name},
        )
    where["resource"] = name

    resource_type = item.get("type")
    if not isinstance(resource_type, str) or not TYPE_PATTERN.match(resource_type):
        raise ManifestError(
            f"Resource '{name}' needs a type like 'aws:ec2/vpc'",
            details={**where, "type": resource_type},
        )

    properties = item.get("properties") or {}
    if not isinstance(properties, dict):
        raise ManifestError(f"Resource '{name}' properties must be a mapping", details=where)

    depends_on = item.get("depends_on") or []
    if isinstance(depends_on, str):
        depends_on = [depends_on]
    if not isinstance(depends_on, list) or not all(isinstance(d, str) for d in depends_on):
        raise ManifestError(
            f"Resource '{name}' depends_on must be a list of names", details=where
        )

    return ResourceNode(
        name=name,
        type=resource_type,
        properties=properties,
        depends_on=frozenset(depends_on),
    )

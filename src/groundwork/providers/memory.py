"""
Simulated cloud provider.

Keeps resources in a dict, hands out AWS-shaped identifiers and ARNs, and
answers the ``ami`` and ``availability_zones`` lookups from a small fixed
catalog. Failures can be injected per operation so retries, blocking and
partial failures can be exercised without a real account.
"""

from __future__ import annotations

import asyncio
import fnmatch
import itertools
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog

from groundwork.core.errors import GroundworkError, ProviderPermanentError
from groundwork.providers.base import ApplyOperation, ProviderHealth
from groundwork.providers.registry import register_provider

logger = structlog.get_logger()

DEFAULT_REGION = "us-east-1"
DEFAULT_ACCOUNT = "123456789012"

DEFAULT_IMAGES: tuple[dict[str, Any], ...] = (
    {
        "id": "ami-0a1b2c3d4e5f60001",
        "name": "debian-12-amd64-20240101-1614",
        "owner": "136693071363",
        "virtualization_type": "hvm",
        "creation_date": "2024-01-01T16:14:00Z",
    },
    {
        "id": "ami-0a1b2c3d4e5f60002",
        "name": "debian-12-amd64-20240601-1710",
        "owner": "136693071363",
        "virtualization_type": "hvm",
        "creation_date": "2024-06-01T17:10:00Z",
    },
    {
        "id": "ami-0f9e8d7c6b5a40001",
        "name": "amzn2-ami-hvm-2.0.20240529.0-x86_64-gp2",
        "owner": "137112412989",
        "virtualization_type": "hvm",
        "creation_date": "2024-05-29T00:00:00Z",
    },
)


@dataclass
class SimulatedResource:
    """A resource living in the simulated cloud."""

    identifier: str
    resource_type: str
    properties: dict[str, Any]
    outputs: dict[str, Any] = field(default_factory=dict)


@dataclass
class InjectedFailure:
    """Error raised by the next ``times`` matching calls."""

    operation: str
    error: GroundworkError
    resource_type: str | None = None
    match: Mapping[str, Any] | None = None
    times: int = 1

    def matches(self, operation: str, resource_type: str, properties: Mapping[str, Any]) -> bool:
        if self.times <= 0 or operation != self.operation:
            return False
        if self.resource_type is not None and resource_type != self.resource_type:
            return False
        if self.match and any(properties.get(k) != v for k, v in self.match.items()):
            return False
        return True


class InMemoryProvider:
    """Process-local stand-in for a cloud account."""

    name = "memory"

    def __init__(
        self,
        *,
        region: str = DEFAULT_REGION,
        account: str = DEFAULT_ACCOUNT,
        zones: list[str] | None = None,
        images: list[dict[str, Any]] | None = None,
        latency: float = 0.0,
    ) -> None:
        self.region = region
        self.account = account
        self.zones = zones if zones is not None else [f"{region}{s}" for s in "abcdef"]
        self.images = list(images if images is not None else DEFAULT_IMAGES)
        self.latency = latency
        self.resources: dict[str, SimulatedResource] = {}
        # (operation, resource_type, identifier) in completion order
        self.events: list[tuple[str, str, str]] = []
        self.lookups: list[tuple[str, dict[str, Any]]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._failures: list[InjectedFailure] = []
        self._counter = itertools.count(1)
        self.health = ProviderHealth(status="healthy")

    def inject_failure(
        self,
        operation: str,
        error: GroundworkError,
        *,
        resource_type: str | None = None,
        match: Mapping[str, Any] | None = None,
        times: int = 1,
    ) -> InjectedFailure:
        """Make the next ``times`` matching calls raise ``error``.

        ``operation`` is one of "create", "update", "destroy" or "lookup";
        ``match`` compares against declared properties (stored properties
        for destroy, the query for lookup).
        """
        failure = InjectedFailure(
            operation=operation,
            error=error,
            resource_type=resource_type,
            match=match,
            times=times,
        )
        self._failures.append(failure)
        return failure

    async def health_check(self) -> ProviderHealth:
        return self.health

    async def apply(
        self,
        resource_type: str,
        operation: ApplyOperation,
        properties: dict[str, Any],
        *,
        identifier: str | None = None,
    ) -> dict[str, Any]:
        async with self._call(operation, resource_type, properties):
            if operation == "create":
                identifier = self._new_identifier(resource_type)
            elif identifier is None or identifier not in self.resources:
                raise ProviderPermanentError(
                    f"{resource_type} {identifier} not found",
                    details={"resource_type": resource_type, "identifier": identifier},
                )

            outputs = self._outputs(resource_type, identifier, properties)
            self.resources[identifier] = SimulatedResource(
                identifier=identifier,
                resource_type=resource_type,
                properties=dict(properties),
                outputs=outputs,
            )
            self.events.append((operation, resource_type, identifier))
            logger.debug(
                "memory_resource_applied",
                operation=operation,
                resource_type=resource_type,
                identifier=identifier,
            )
            return dict(outputs)

    async def destroy(self, resource_type: str, identifier: str) -> None:
        existing = self.resources.get(identifier)
        properties = existing.properties if existing else {}
        async with self._call("destroy", resource_type, properties):
            if existing is None:
                logger.warning(
                    "memory_resource_missing",
                    resource_type=resource_type,
                    identifier=identifier,
                )
            else:
                del self.resources[identifier]
            self.events.append(("destroy", resource_type, identifier))

    async def lookup(self, kind: str, query: dict[str, Any]) -> Any:
        self._raise_injected("lookup", kind, query)
        self.lookups.append((kind, dict(query)))
        if kind == "ami":
            return self._find_image(query)
        if kind == "availability_zones":
            return self._availability_zones(query)
        raise ProviderPermanentError(f"Unsupported lookup kind '{kind}'", details={"kind": kind})

    @asynccontextmanager
    async def _call(
        self, operation: str, resource_type: str, properties: Mapping[str, Any]
    ) -> AsyncIterator[None]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            self._raise_injected(operation, resource_type, properties)
            yield
        finally:
            self.in_flight -= 1

    def _raise_injected(
        self, operation: str, resource_type: str, properties: Mapping[str, Any]
    ) -> None:
        for failure in self._failures:
            if failure.matches(operation, resource_type, properties):
                failure.times -= 1
                raise failure.error

    def _new_identifier(self, resource_type: str) -> str:
        prefix = resource_type.rsplit("/", 1)[-1].replace("_", "-")
        return f"{prefix}-{next(self._counter):08x}"

    def _outputs(
        self, resource_type: str, identifier: str, properties: Mapping[str, Any]
    ) -> dict[str, Any]:
        service = resource_type.split(":", 1)[-1].split("/", 1)[0]
        kind = resource_type.rsplit("/", 1)[-1]
        outputs = dict(properties)
        outputs["id"] = identifier
        outputs["arn"] = f"arn:aws:{service}:{self.region}:{self.account}:{kind}/{identifier}"
        if resource_type == "aws:rds/instance":
            port = properties.get("port", 5432)
            outputs["address"] = f"{identifier}.{self.region}.rds.amazonaws.com"
            outputs["endpoint"] = f"{outputs['address']}:{port}"
        elif resource_type == "aws:lb/load_balancer":
            outputs["dns_name"] = f"{identifier}.{self.region}.elb.amazonaws.com"
            outputs["zone_id"] = "Z35SXDOTRQ7X7K"
        elif resource_type == "aws:ec2/instance":
            outputs["private_ip"] = f"10.0.{len(self.resources) % 256}.10"
        return outputs

    def _find_image(self, query: dict[str, Any]) -> str:
        pattern = query.get("name", "*")
        owners = query.get("owners")
        virtualization = query.get("virtualization_type")
        candidates = [
            image
            for image in self.images
            if fnmatch.fnmatch(image["name"], pattern)
            and (not owners or image["owner"] in owners)
            and (not virtualization or image["virtualization_type"] == virtualization)
        ]
        if not candidates:
            raise ProviderPermanentError("No image matches the filter", details={"query": query})
        if len(candidates) > 1 and not query.get("most_recent", False):
            raise ProviderPermanentError(
                "Image filter matches more than one image; set most_recent",
                details={"query": query},
            )
        return max(candidates, key=lambda image: image["creation_date"])["id"]

    def _availability_zones(self, query: dict[str, Any]) -> Any:
        zones = list(self.zones)
        if "max" in query:
            limit = int(query["max"])
            if limit <= 0 or limit > len(zones):
                raise ProviderPermanentError(
                    "Not sufficient availability zones",
                    details={"requested": limit, "available": len(zones)},
                )
            zones = zones[:limit]
        if "index" in query:
            return zones[int(query["index"])]
        return zones


register_provider(
    "memory",
    InMemoryProvider,
    description="Simulated cloud kept in process memory",
)
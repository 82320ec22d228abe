from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

ApplyOperation = Literal["create", "update"]


@dataclass(frozen=True)
class ProviderHealth:
    status: Literal["healthy", "degraded", "unreachable"]
    details: str | None = None


class Provider(Protocol):
    """Contract between the executor and a cloud.

    Providers signal failures with :class:`~groundwork.core.errors.ProviderTransientError`
    (retried) or :class:`~groundwork.core.errors.ProviderPermanentError` (not retried).
    """

    name: str

    async def apply(
        self,
        resource_type: str,
        operation: ApplyOperation,
        properties: dict[str, Any],
        *,
        identifier: str | None = None,
    ) -> dict[str, Any]:
        """Create or update a resource and return its outputs (including ``id``)."""
        ...

    async def destroy(self, resource_type: str, identifier: str) -> None:
        ...

    async def lookup(self, kind: str, query: dict[str, Any]) -> Any:
        """Answer a read-only data-source query."""
        ...

    async def health_check(self) -> ProviderHealth:
        ...

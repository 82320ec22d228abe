from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from groundwork.core.errors import ConfigurationError

ProviderFactory = Callable[..., Any]


@dataclass(frozen=True)
class ProviderSpec:
    """Metadata describing a registered provider."""

    name: str
    factory: ProviderFactory
    description: str | None = None


class ProviderRegistry:
    """In-memory registry of provider factories, keyed by name."""

    def __init__(self) -> None:
        self._providers: Dict[str, ProviderSpec] = {}

    def register(
        self,
        name: str,
        factory: ProviderFactory,
        *,
        description: str | None = None,
    ) -> None:
        if not name:
            raise ValueError("Provider name is required")
        self._providers[name] = ProviderSpec(name=name, factory=factory, description=description)

    def create(self, name: str, **kwargs: Any) -> Any:
        spec = self._providers.get(name)
        if spec is None:
            raise ConfigurationError(
                f"Provider '{name}' is not registered",
                details={"provider": name, "available": sorted(self._providers)},
            )
        return spec.factory(**kwargs)

    def list(self) -> List[ProviderSpec]:
        return [self._providers[name] for name in sorted(self._providers)]


provider_registry = ProviderRegistry()


def register_provider(
    name: str,
    factory: ProviderFactory,
    *,
    description: str | None = None,
) -> None:
    provider_registry.register(name, factory, description=description)


def create_provider(name: str, **kwargs: Any) -> Any:
    return provider_registry.create(name, **kwargs)


def list_providers() -> List[ProviderSpec]:
    return provider_registry.list()

"""Cloud providers and the provider registry."""

from groundwork.providers.base import ApplyOperation, Provider, ProviderHealth
from groundwork.providers.memory import InMemoryProvider
from groundwork.providers.registry import (
    ProviderRegistry,
    ProviderSpec,
    create_provider,
    list_providers,
    provider_registry,
    register_provider,
)

__all__ = [
    "ApplyOperation",
    "InMemoryProvider",
    "Provider",
    "ProviderHealth",
    "ProviderRegistry",
    "ProviderSpec",
    "create_provider",
    "list_providers",
    "provider_registry",
    "register_provider",
]

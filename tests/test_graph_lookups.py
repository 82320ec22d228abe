"""Tests for data-source lookups."""

import pytest

from groundwork.core.errors import (
    LookupFailedError,
    ProviderPermanentError,
    ProviderTransientError,
)
from groundwork.graph.lookups import LookupResolver
from groundwork.providers.memory import InMemoryProvider


class TestLocalLookups:
    """Lookups computed in-process."""

    @pytest.mark.asyncio
    async def test_cidr_subnets_list(self):
        resolver = LookupResolver()

        subnets = await resolver.resolve(
            {"kind": "cidr_subnets", "cidr": "10.0.0.0/16", "count": 3, "prefix_length": 24}
        )

        assert subnets == ["10.0.0.0/24", "10.0.1.0/24", "10.0.2.0/24"]

    @pytest.mark.asyncio
    async def test_cidr_subnets_invalid(self):
        resolver = LookupResolver()

        with pytest.raises(LookupFailedError, match="cidr_subnets"):
            await resolver.resolve(
                {"kind": "cidr_subnets", "cidr": "10.0.0.0/24", "count": 8, "prefix_length": 26}
            )

    @pytest.mark.asyncio
    async def test_missing_kind(self):
        with pytest.raises(LookupFailedError, match="kind"):
            await LookupResolver().resolve({"name": "x"})

    @pytest.mark.asyncio
    async def test_lookup_must_be_mapping(self):
        with pytest.raises(LookupFailedError, match="mapping"):
            await LookupResolver().resolve("ami")

    @pytest.mark.asyncio
    async def test_cidr_subnets_missing_count(self):
        with pytest.raises(LookupFailedError, match="cidr_subnets"):
            await LookupResolver().resolve(
                {"kind": "cidr_subnets", "cidr": "10.0.0.0/16", "count": None, "prefix_length": 24}
            )


class TestProviderLookups:
    """Lookups delegated to the provider."""

    @pytest.mark.asyncio
    async def test_newest_matching_image(self):
        resolver = LookupResolver(InMemoryProvider())

        ami = await resolver.resolve(
            {"kind": "ami", "name": "debian-12-*", "owners": ["136693071363"], "most_recent": True}
        )

        assert ami == "ami-0a1b2c3d4e5f60002"

    @pytest.mark.asyncio
    async def test_results_cached_per_query(self):
        provider = InMemoryProvider()
        resolver = LookupResolver(provider)
        query = {"kind": "availability_zones", "max": 2}

        first = await resolver.resolve(query)
        second = await resolver.resolve(dict(query))

        assert first == second == ["us-east-1a", "us-east-1b"]
        assert resolver.calls == 1
        assert len(provider.lookups) == 1

    @pytest.mark.asyncio
    async def test_provider_failure_wrapped(self):
        provider = InMemoryProvider()
        provider.inject_failure("lookup", ProviderPermanentError("denied"), resource_type="ami")

        with pytest.raises(LookupFailedError, match="denied"):
            await LookupResolver(provider).resolve({"kind": "ami", "name": "*"})

    @pytest.mark.asyncio
    async def test_no_provider(self):
        with pytest.raises(LookupFailedError, match="No provider"):
            await LookupResolver().resolve({"kind": "ami", "name": "*"})

    @pytest.mark.asyncio
    async def test_references_rejected(self):
        with pytest.raises(LookupFailedError, match="cannot reference"):
            await LookupResolver(InMemoryProvider()).resolve(
                {"kind": "ami", "name": "${vpc.id}"}
            )

    @pytest.mark.asyncio
    async def test_resolve_value_replaces_nested_lookups(self):
        resolver = LookupResolver(InMemoryProvider())

        value = await resolver.resolve_value(
            {
                "ami": {"$lookup": {"kind": "ami", "name": "amzn2-*"}},
                "zones": [{"$lookup": {"kind": "availability_zones", "index": 0}}],
                "name": "web",
            }
        )

        assert value == {"ami": "ami-0f9e8d7c6b5a40001", "zones": ["us-east-1a"], "name": "web"}

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self):
        provider = InMemoryProvider()
        provider.inject_failure(
            "lookup", ProviderTransientError("Throttling"), resource_type="availability_zones"
        )
        resolver = LookupResolver(provider, max_attempts=3, backoff_initial=0, backoff_max=0)

        zone = await resolver.resolve({"kind": "availability_zones", "index": 0})

        assert zone == "us-east-1a"
        assert len(provider.lookups) == 1

    @pytest.mark.asyncio
    async def test_transient_failure_exhausts_attempts(self):
        provider = InMemoryProvider()
        provider.inject_failure(
            "lookup", ProviderTransientError("Throttling"), resource_type="ami", times=5
        )
        resolver = LookupResolver(provider, max_attempts=2, backoff_initial=0, backoff_max=0)

        with pytest.raises(LookupFailedError, match="Throttling"):
            await resolver.resolve({"kind": "ami", "name": "*"})
        assert provider.lookups == []

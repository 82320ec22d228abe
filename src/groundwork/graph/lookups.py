"""
Data-source lookups resolved while the graph is built.

A property value ``{"$lookup": {"kind": "ami", "name": "debian-12-*"}}`` is a
read-only query. Built-in local kinds are computed in-process; every other
kind is delegated to the provider. Results are cached for the lifetime of the
resolver, which is one run.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from groundwork.core.errors import GroundworkError, LookupFailedError, ProviderTransientError
from groundwork.core.values import canonical_json, thaw
from groundwork.graph.references import LOOKUP_KEY, REFERENCE_PATTERN, is_lookup
from groundwork.netcalc import calculate_cidr_subnets

logger = structlog.get_logger()


class LookupSource(Protocol):
    """Anything that can answer external lookups (normally the provider)."""

    async def lookup(self, kind: str, query: dict[str, Any]) -> Any:
        ...


def _cidr_subnets(query: dict[str, Any]) -> Any:
    subnets = calculate_cidr_subnets(
        query["cidr"],
        int(query["count"]),
        int(query["prefix_length"]),
    )
    if "index" in query:
        return subnets[int(query["index"])]
    return subnets


LOCAL_LOOKUPS: dict[str, Callable[[dict[str, Any]], Any]] = {
    "cidr_subnets": _cidr_subnets,
}


class LookupResolver:
    """Resolves and caches lookups for a single run.

    Provider lookups that fail transiently are retried with exponential
    backoff, the same way the executor retries provider calls.
    """

    def __init__(
        self,
        source: LookupSource | None = None,
        *,
        max_attempts: int = 5,
        backoff_initial: float = 1.0,
        backoff_max: float = 30.0,
    ) -> None:
        self._source = source
        self._cache: dict[tuple[str, str], Any] = {}
        self.calls = 0
        self.max_attempts = max(1, max_attempts)
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max

    async def resolve(self, spec: Mapping[str, Any]) -> Any:
        """Resolve one lookup spec (the mapping under ``$lookup``)."""
        if not isinstance(spec, Mapping):
            raise LookupFailedError(
                "Lookup must be a mapping with a 'kind'",
                details={"lookup": repr(spec)},
            )
        query = thaw(spec)
        kind = query.pop("kind", None)
        if not kind:
            raise LookupFailedError("Lookup is missing 'kind'", details={"query": query})
        if REFERENCE_PATTERN.search(canonical_json(query)):
            raise LookupFailedError(
                "Lookups cannot reference resource outputs",
                details={"kind": kind},
            )

        key = (kind, canonical_json(query))
        if key in self._cache:
            return self._cache[key]

        self.calls += 1
        value = await self._dispatch(kind, query)
        self._cache[key] = value
        logger.debug("lookup_resolved", kind=kind)
        return value

    async def resolve_value(self, value: Any) -> Any:
        """Replace every lookup inside ``value`` with its result."""
        if is_lookup(value):
            return await self.resolve(value[LOOKUP_KEY])
        if isinstance(value, Mapping):
            return {k: await self.resolve_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [await self.resolve_value(v) for v in value]
        return value

    async def _dispatch(self, kind: str, query: dict[str, Any]) -> Any:
        local = LOCAL_LOOKUPS.get(kind)
        try:
            if local is not None:
                return local(query)
            if self._source is None:
                raise LookupFailedError(
                    f"No provider available to resolve lookup '{kind}'",
                    details={"kind": kind},
                )
            return await self._lookup_with_retries(self._source, kind, query)
        except LookupFailedError:
            raise
        except (GroundworkError, KeyError, TypeError, ValueError, IndexError) as exc:
            raise LookupFailedError(
                f"Lookup '{kind}' failed: {exc}",
                details={"kind": kind},
            ) from exc

    async def _lookup_with_retries(
        self, source: LookupSource, kind: str, query: dict[str, Any]
    ) -> Any:
        def before_sleep(retry_state: Any) -> None:
            logger.warning(
                "lookup_retrying",
                kind=kind,
                attempt=retry_state.attempt_number,
                wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
                error=str(retry_state.outcome.exception()),
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ProviderTransientError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_initial, max=self.backoff_max),
            before_sleep=before_sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await source.lookup(kind, dict(query))
        raise AssertionError("unreachable")  # pragma: no cover

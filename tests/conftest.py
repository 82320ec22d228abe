"""Root test configuration."""

import logging

import pytest
import structlog

from groundwork.config import Settings
from groundwork.core.values import property_hash, thaw
from groundwork.graph.builder import build_graph
from groundwork.graph.models import ResourceNode
from groundwork.providers.memory import InMemoryProvider
from groundwork.state.models import StateRecord
from groundwork.state.store import MemoryStateStore


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def provider():
    """Simulated cloud with no latency."""
    return InMemoryProvider()


@pytest.fixture
def store():
    return MemoryStateStore()


@pytest.fixture
def fast_settings():
    """Settings with retries that do not sleep."""
    return Settings(
        _env_file=None,
        state_backend="memory",
        max_concurrency=4,
        max_attempts=3,
        backoff_initial=0,
        backoff_max=0,
    )


@pytest.fixture
def make_stack():
    """Factory for the network / database / instance stack.

    database depends on network; instance depends on network and database.
    """

    def _make(instance_type="t3.micro", engine="postgres", database_type="aws:rds/instance"):
        return [
            ResourceNode(
                name="network",
                type="aws:ec2/vpc",
                properties={"cidr_block": "10.0.0.0/16"},
            ),
            ResourceNode(
                name="database",
                type=database_type,
                properties={
                    "engine": engine,
                    "instance_class": "db.t3.micro",
                    "vpc_id": "${network.id}",
                },
            ),
            ResourceNode(
                name="instance",
                type="aws:ec2/instance",
                properties={
                    "instance_type": instance_type,
                    "subnet_id": "${network.id}",
                    "user_data": "DB=${database.endpoint}",
                },
            ),
        ]

    return _make


@pytest.fixture
def applied_state():
    """Factory for a snapshot as if the given nodes had all been applied."""

    def _applied(nodes):
        graph = build_graph(nodes)
        snapshot = {}
        for node in nodes:
            properties = thaw(node.properties)
            snapshot[node.name] = StateRecord(
                name=node.name,
                resource_type=node.type,
                identifier=f"{node.name}-0001",
                property_hash=property_hash(properties),
                properties=properties,
                outputs={"id": f"{node.name}-0001"},
                dependencies=sorted(graph.dependencies_of(node.name)),
            )
        return snapshot

    return _applied

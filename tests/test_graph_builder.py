"""Tests for the resource graph builder."""

import pytest

from groundwork.core.errors import CycleError, DuplicateResourceError, MissingReferenceError
from groundwork.graph.builder import GraphBuilder, build_graph, find_cycle
from groundwork.graph.models import ResourceNode


def node(name, properties=None, depends_on=(), type_="test:thing"):
    return ResourceNode(
        name=name, type=type_, properties=properties or {}, depends_on=frozenset(depends_on)
    )


class TestBuildGraph:
    """Tests for build_graph."""

    def test_example_stack_order(self, make_stack):
        """Dependencies come before dependents."""
        graph = build_graph(make_stack())

        assert graph.topological_order() == ["network", "database", "instance"]
        assert graph.dependencies_of("instance") == {"network", "database"}
        assert graph.dependents_of("network") == {"database", "instance"}
        assert graph.transitive_dependents("network") == {"database", "instance"}

    def test_ties_broken_by_name(self):
        """Independent nodes are ordered by logical name."""
        graph = build_graph([node("c"), node("a"), node("b")])

        assert graph.topological_order() == ["a", "b", "c"]

    def test_reference_edge_records_attributes_and_keys(self):
        """Edges remember which attributes and property keys carry the reference."""
        graph = build_graph(
            [
                node("vpc"),
                node("subnet", {"vpc_id": "${vpc.id}", "tags": {"Vpc": "${vpc.arn}"}}),
            ]
        )

        edge = graph.edge("subnet", "vpc")
        assert edge is not None
        assert edge.attributes == {"id", "arn"}
        assert edge.properties == {"vpc_id", "tags"}
        assert edge.explicit is False

    def test_explicit_dependency_edge(self):
        """depends_on creates an edge with no referencing properties."""
        graph = build_graph([node("gateway"), node("route", depends_on=["gateway"])])

        edge = graph.edge("route", "gateway")
        assert edge.explicit is True
        assert edge.properties == frozenset()

    def test_missing_reference(self):
        """A reference to an unknown name names both resources."""
        with pytest.raises(MissingReferenceError) as exc_info:
            build_graph([node("subnet", {"vpc_id": "${vpc.id}"})])

        assert exc_info.value.resource == "subnet"
        assert exc_info.value.missing == "vpc"

    def test_missing_explicit_dependency(self):
        with pytest.raises(MissingReferenceError):
            build_graph([node("route", depends_on=["gateway"])])

    def test_duplicate_name(self):
        with pytest.raises(DuplicateResourceError) as exc_info:
            build_graph([node("a"), node("a")])

        assert exc_info.value.name == "a"

    def test_two_node_cycle(self):
        """Mutual references are rejected with the cycle in order."""
        with pytest.raises(CycleError) as exc_info:
            build_graph([node("a", {"x": "${b.id}"}), node("b", {"y": "${a.id}"})])

        assert exc_info.value.cycle == ["a", "b"]
        assert "a -> b -> a" in str(exc_info.value)

    def test_self_reference_is_cycle(self):
        with pytest.raises(CycleError) as exc_info:
            build_graph([node("a", {"x": "${a.id}"})])

        assert exc_info.value.cycle == ["a"]

    def test_empty_declarations(self):
        graph = build_graph([])

        assert len(graph) == 0
        assert graph.topological_order() == []


class TestFindCycle:
    """Tests for find_cycle."""

    def test_acyclic(self):
        assert find_cycle({"a": ["b"], "b": ["c"], "c": []}) is None

    def test_cycle_in_larger_graph(self):
        cycle = find_cycle({"a": ["b"], "b": ["c"], "c": ["d"], "d": ["b"]})

        assert cycle == ["b", "c", "d"]


class TestGraphBuilder:
    """Tests for the async builder with lookups."""

    @pytest.mark.asyncio
    async def test_lookups_resolved_before_linking(self):
        builder = GraphBuilder()
        graph = await builder.build(
            [
                node("vpc", {"cidr_block": "10.0.0.0/16"}),
                node(
                    "subnet",
                    {
                        "vpc_id": "${vpc.id}",
                        "cidr_block": {
                            "$lookup": {
                                "kind": "cidr_subnets",
                                "cidr": "10.0.0.0/16",
                                "count": 4,
                                "prefix_length": 24,
                                "index": 2,
                            }
                        },
                    },
                ),
            ]
        )

        assert graph.get("subnet").properties["cidr_block"] == "10.0.2.0/24"
        assert graph.dependencies_of("subnet") == {"vpc"}

    @pytest.mark.asyncio
    async def test_nodes_are_frozen(self):
        graph = await GraphBuilder().build([node("a", {"tags": {"Name": "a"}})])

        with pytest.raises(TypeError):
            graph.get("a").properties["tags"]["Name"] = "b"

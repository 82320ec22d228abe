"""Tests for the diff engine."""

import pytest

from groundwork.catalog import ReplaceOrdering, ResourceTypeSpec, TypeRegistry, aws_type_registry
from groundwork.diff.engine import DiffEngine, changed_keys
from groundwork.diff.models import ChangeAction
from groundwork.graph.builder import build_graph
from groundwork.graph.models import ResourceNode


@pytest.fixture
def engine():
    return DiffEngine(aws_type_registry())


class TestClassification:
    """Create / update / replace / delete for the resource's own declaration."""

    def test_empty_state_creates_everything(self, engine, make_stack):
        changeset = engine.diff(build_graph(make_stack()), {})

        assert [(e.name, e.action) for e in changeset] == [
            ("database", ChangeAction.CREATE),
            ("instance", ChangeAction.CREATE),
            ("network", ChangeAction.CREATE),
        ]

    def test_unchanged_is_empty(self, engine, make_stack, applied_state):
        nodes = make_stack()

        changeset = engine.diff(build_graph(nodes), applied_state(nodes))

        assert changeset.is_empty
        assert len(changeset) == 0

    def test_mutable_change_is_single_update(self, engine, make_stack, applied_state):
        snapshot = applied_state(make_stack())

        changeset = engine.diff(build_graph(make_stack(instance_type="t3.large")), snapshot)

        assert len(changeset) == 1
        entry = changeset.get("instance")
        assert entry.action is ChangeAction.UPDATE
        assert entry.changed == {"instance_type"}
        assert entry.prior is snapshot["instance"]

    def test_immutable_change_is_replace(self, engine, make_stack, applied_state):
        snapshot = applied_state(make_stack())

        changeset = engine.diff(build_graph(make_stack(engine="mysql")), snapshot)

        entry = changeset.get("database")
        assert entry.action is ChangeAction.REPLACE
        assert entry.ordering is ReplaceOrdering.DESTROY_BEFORE_CREATE
        assert entry.changed == {"engine"}

    def test_type_change_is_replace(self, engine, applied_state):
        old = ResourceNode(name="topic", type="aws:sns/topic", properties={"name": "alerts"})
        new = ResourceNode(name="topic", type="custom:topic", properties={"name": "alerts"})

        changeset = engine.diff(build_graph([new]), applied_state([old]))

        entry = changeset.get("topic")
        assert entry.action is ChangeAction.REPLACE
        assert entry.resource_type == "custom:topic"

    def test_absent_from_desired_is_delete(self, engine, make_stack, applied_state):
        nodes = make_stack()
        snapshot = applied_state(nodes)

        changeset = engine.diff(build_graph(nodes[:2]), snapshot)

        entry = changeset.get("instance")
        assert entry.action is ChangeAction.DELETE
        assert entry.resource_type == "aws:ec2/instance"
        assert entry.prior is snapshot["instance"]
        assert len(changeset) == 1

    def test_record_without_properties_updates(self, engine, applied_state):
        """A hash mismatch with no stored properties cannot be classified further."""
        node = ResourceNode(name="db", type="aws:rds/instance", properties={"engine": "mysql"})
        legacy = applied_state([node])["db"]
        legacy.properties = {}
        legacy.property_hash = "0" * 64

        changeset = engine.diff(build_graph([node]), {"db": legacy})

        assert changeset.get("db").action is ChangeAction.UPDATE
        assert changeset.get("db").changed == frozenset()

    def test_summary(self, engine, make_stack):
        changeset = engine.diff(build_graph(make_stack()), {})

        assert changeset.summary() == {"create": 3, "update": 0, "replace": 0, "delete": 0}


class TestReplacementCascade:
    """Dependents of a replaced resource are re-applied."""

    def test_dependent_of_replaced_resource_is_updated(self, engine, make_stack, applied_state):
        """instance references the database endpoint, which changes on replace."""
        changeset = engine.diff(
            build_graph(make_stack(engine="mysql")), applied_state(make_stack())
        )

        entry = changeset.get("instance")
        assert entry.action is ChangeAction.UPDATE
        assert entry.triggered_by == "database"
        assert entry.changed == {"user_data"}
        assert "network" not in changeset

    def test_immutable_reference_cascades_replace(self, engine, make_stack, applied_state):
        """subnet_id is immutable on an instance, so replacing the network replaces it."""
        old = make_stack()
        new = make_stack()
        new[0] = ResourceNode(
            name="network", type="aws:ec2/vpc", properties={"cidr_block": "10.1.0.0/16"}
        )

        changeset = engine.diff(build_graph(new), applied_state(old))

        assert changeset.get("network").action is ChangeAction.REPLACE
        instance = changeset.get("instance")
        assert instance.action is ChangeAction.REPLACE
        assert instance.triggered_by == "network"
        assert instance.changed == {"subnet_id"}
        assert changeset.get("database").action is ChangeAction.UPDATE

    def test_explicit_dependency_does_not_cascade(self, applied_state):
        registry = TypeRegistry([ResourceTypeSpec(name="t:a", immutable=frozenset({"size"}))])
        old = [
            ResourceNode(name="a", type="t:a", properties={"size": 1}),
            ResourceNode(name="b", type="t:b", properties={"x": 1}, depends_on=frozenset({"a"})),
        ]
        new = [ResourceNode(name="a", type="t:a", properties={"size": 2}), old[1]]

        changeset = DiffEngine(registry).diff(build_graph(new), applied_state(old))

        assert changeset.get("a").action is ChangeAction.REPLACE
        assert "b" not in changeset

    def test_update_upgraded_when_reference_is_immutable(self, applied_state):
        registry = TypeRegistry(
            [
                ResourceTypeSpec(name="t:a", immutable=frozenset({"size"})),
                ResourceTypeSpec(name="t:b", immutable=frozenset({"parent"})),
            ]
        )
        old = [
            ResourceNode(name="a", type="t:a", properties={"size": 1}),
            ResourceNode(name="b", type="t:b", properties={"parent": "${a.id}", "label": "x"}),
        ]
        new = [
            ResourceNode(name="a", type="t:a", properties={"size": 2}),
            ResourceNode(name="b", type="t:b", properties={"parent": "${a.id}", "label": "y"}),
        ]

        changeset = DiffEngine(registry).diff(build_graph(new), applied_state(old))

        entry = changeset.get("b")
        assert entry.action is ChangeAction.REPLACE
        assert entry.changed == {"label", "parent"}
        assert entry.triggered_by == "a"


class TestChangedKeys:
    def test_added_removed_and_modified(self):
        assert changed_keys({"a": 1, "b": 2, "c": [1]}, {"a": 1, "b": 3, "d": 4, "c": [1]}) == {
            "b",
            "d",
        }

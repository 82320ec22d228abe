"""Tests for output references."""

import pytest

from groundwork.graph.references import (
    Reference,
    ReferenceResolutionError,
    collect_references,
    is_lookup,
    iter_references,
    resolve_references,
)

OUTPUTS = {
    "vpc": {"id": "vpc-1", "arn": "arn:aws:ec2:::vpc/vpc-1", "cidr": "10.0.0.0/16"},
    "lb": {"listeners": [{"arn": "arn:listener/0"}], "dns_name": "lb.example.com", "port": 443},
}


class TestIterReferences:
    def test_nested_values(self):
        refs = set(
            iter_references({"a": "${vpc.id}", "b": ["x", {"c": "port ${lb.port}"}], "d": 3})
        )

        assert refs == {Reference("vpc", "id"), Reference("lb", "port")}

    def test_collect_by_top_level_key(self):
        found = collect_references({"vpc_id": "${vpc.id}", "name": "web", "tags": ["${vpc.arn}"]})

        assert found == {
            "vpc_id": {Reference("vpc", "id")},
            "tags": {Reference("vpc", "arn")},
        }

    def test_reference_string_form(self):
        assert str(Reference("vpc", "id")) == "${vpc.id}"


class TestResolveReferences:
    def test_whole_value_keeps_type(self):
        """A value that is exactly one reference resolves to the raw output."""
        assert resolve_references("${lb.port}", OUTPUTS) == 443
        assert resolve_references("${lb.listeners}", OUTPUTS) == [{"arn": "arn:listener/0"}]

    def test_embedded_references_are_interpolated(self):
        assert resolve_references("https://${lb.dns_name}:${lb.port}/", OUTPUTS) == (
            "https://lb.example.com:443/"
        )

    def test_dotted_path_with_index(self):
        assert resolve_references("${lb.listeners.0.arn}", OUTPUTS) == "arn:listener/0"

    def test_structures_are_walked(self):
        resolved = resolve_references({"ids": ["${vpc.id}", "static"], "n": 1}, OUTPUTS)

        assert resolved == {"ids": ["vpc-1", "static"], "n": 1}

    def test_unknown_resource(self):
        with pytest.raises(ReferenceResolutionError, match="No outputs recorded"):
            resolve_references("${db.endpoint}", OUTPUTS)

    def test_unknown_attribute(self):
        with pytest.raises(ReferenceResolutionError, match="not found"):
            resolve_references("${vpc.missing}", OUTPUTS)

    def test_index_out_of_range(self):
        with pytest.raises(ReferenceResolutionError):
            resolve_references("${lb.listeners.3.arn}", OUTPUTS)


class TestIsLookup:
    def test_lookup_shape(self):
        assert is_lookup({"$lookup": {"kind": "ami"}})
        assert not is_lookup({"$lookup": {"kind": "ami"}, "other": 1})
        assert not is_lookup("ami-123")

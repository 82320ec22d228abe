"""Resource type catalog."""

from groundwork.catalog.aws import AWS_RESOURCE_TYPES, aws_type_registry
from groundwork.catalog.types import ReplaceOrdering, ResourceTypeSpec, TypeRegistry

__all__ = [
    "AWS_RESOURCE_TYPES",
    "ReplaceOrdering",
    "ResourceTypeSpec",
    "TypeRegistry",
    "aws_type_registry",
]

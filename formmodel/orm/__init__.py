"""SQLAlchemy 适配层: schema 查找、关联描述、记录标识与嵌套写入."""

from .keys import CompositeKey, identifiers_match, identity_of
from .recursive_update import recursive_update
from .relationships import RelationshipDescriptor, RelationshipKind, describe_relationship
from .schema import RecordSet, Schema, Source

__all__ = [
    "CompositeKey",
    "RecordSet",
    "RelationshipDescriptor",
    "RelationshipKind",
    "Schema",
    "Source",
    "describe_relationship",
    "identifiers_match",
    "identity_of",
    "recursive_update",
]

"""关联描述.

把映射类上的访问器(外键列、relationship、association proxy)统一解析为
`RelationshipDescriptor`,解析只依赖静态的 mapper 元数据.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy.ext.associationproxy import AssociationProxyExtensionType
from sqlalchemy.orm import RelationshipProperty
from sqlalchemy.orm.interfaces import MANYTOMANY, ONETOMANY


class RelationshipKind(str, Enum):
    """访问器到关联记录的连接方式."""

    COLUMN = "column"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    MANY_TO_MANY = "many_to_many"


@dataclass(frozen=True, slots=True)
class RelationshipDescriptor:
    """单个访问器的关联描述.

    Attributes:
        name: 访问器名称.
        kind: 关联类型.
        target: 关联记录的映射类.
        via: association proxy 经过的本地 relationship 名称,其他类型为 None.

    """

    name: str
    kind: RelationshipKind
    target: type
    via: str | None = None

    @property
    def uselist(self) -> bool:
        return self.kind in (RelationshipKind.HAS_MANY, RelationshipKind.MANY_TO_MANY)

    @property
    def proxied(self) -> bool:
        return self.via is not None


def describe_relationship(mapper: Any, name: str) -> RelationshipDescriptor | None:
    """解析访问器对应的关联描述,无法解析时返回 None."""
    if name in mapper.relationships:
        return _describe_property(name, mapper.relationships[name])

    descriptors = mapper.all_orm_descriptors
    if name in descriptors and descriptors[name].extension_type is AssociationProxyExtensionType.ASSOCIATION_PROXY:
        return _describe_association_proxy(mapper, name)

    if name in mapper.column_attrs:
        return _describe_foreign_key(mapper, name)
    return None


def _describe_property(name: str, prop: RelationshipProperty) -> RelationshipDescriptor:
    if prop.direction is MANYTOMANY:
        kind = RelationshipKind.MANY_TO_MANY
    elif prop.direction is ONETOMANY and prop.uselist:
        kind = RelationshipKind.HAS_MANY
    else:
        kind = RelationshipKind.HAS_ONE
    return RelationshipDescriptor(name=name, kind=kind, target=prop.mapper.class_)


def _describe_association_proxy(mapper: Any, name: str) -> RelationshipDescriptor | None:
    proxy = getattr(mapper.class_, name)
    remote_prop = getattr(proxy.remote_attr, "property", None)
    # 代理到普通列(如关键字字符串)时不构成记录关联
    if not isinstance(remote_prop, RelationshipProperty):
        return None

    local_prop = proxy.local_attr.property
    kind = RelationshipKind.MANY_TO_MANY if local_prop.uselist else RelationshipKind.HAS_ONE
    return RelationshipDescriptor(name=name, kind=kind, target=remote_prop.mapper.class_, via=local_prop.key)


def _describe_foreign_key(mapper: Any, name: str) -> RelationshipDescriptor | None:
    for column in mapper.column_attrs[name].columns:
        for foreign_key in column.foreign_keys:
            target_table = foreign_key.column.table
            for candidate in mapper.registry.mappers:
                if candidate.local_table is target_table and candidate.inherits is None:
                    return RelationshipDescriptor(name=name, kind=RelationshipKind.COLUMN, target=candidate.class_)
    return None


__all__ = [
    "RelationshipDescriptor",
    "RelationshipKind",
    "describe_relationship",
]

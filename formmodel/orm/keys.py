"""记录标识工具.

单列主键使用标量标识,复合主键使用 `CompositeKey`.所有标识比较都经过
`identifier_tuple` 规范化,保证标量、元组与结构化标识之间的比较结果一致.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias

from sqlalchemy import and_, inspect as sa_inspect, not_
from sqlalchemy.orm import InstanceState

from formmodel.errors import ConfigurationError

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

    from formmodel.orm.schema import Source


@dataclass(frozen=True, slots=True)
class CompositeKey:
    """复合主键标识.

    Attributes:
        values: 主键属性名到取值的映射.
        key: 标识满足的约束名称,主键固定为 ``primary``.

    """

    values: Mapping[str, Any] = field(default_factory=dict)
    key: str = "primary"

    def columns(self) -> list[str]:
        return list(self.values)


ItemIdentifier: TypeAlias = CompositeKey | tuple | list | str | int | Any


def primary_key_attributes(mapper: Any) -> list[str]:
    """按主键列顺序返回映射类上的主键属性名."""
    return [mapper.get_property_by_column(column).key for column in mapper.primary_key]


def identity_of(instance: object) -> ItemIdentifier | None:
    """返回记录实例的标识.

    单列主键返回标量,复合主键返回 `CompositeKey`,尚未分配主键的临时对象返回 None.
    """
    state = sa_inspect(instance)
    mapper = state.mapper
    columns = primary_key_attributes(mapper)
    values = [getattr(instance, name) for name in columns]
    if any(value is None for value in values):
        return None
    if len(columns) == 1:
        return values[0]
    return CompositeKey(values=dict(zip(columns, values, strict=True)))


def is_record(value: object) -> bool:
    """判断对象是否为 ORM 映射实例."""
    if isinstance(value, type):
        return False
    state = sa_inspect(value, raiseerr=False)
    return isinstance(state, InstanceState)


def identifier_values(identifier: ItemIdentifier, primary_columns: Sequence[str]) -> tuple[Any, ...]:
    """按主键列顺序取出标识中的原始值."""
    if isinstance(identifier, CompositeKey):
        identifier = identifier.values
    if isinstance(identifier, Mapping):
        return tuple(identifier.get(column) for column in primary_columns)
    if isinstance(identifier, (tuple, list)):
        return tuple(identifier)
    return (identifier,)


def identifier_tuple(identifier: ItemIdentifier, primary_columns: Sequence[str]) -> tuple[str | None, ...]:
    """把任意形式的标识规范化为按主键列顺序排列的字符串元组."""
    return tuple(None if part is None else str(part) for part in identifier_values(identifier, primary_columns))


def identifiers_match(
    left: ItemIdentifier | None,
    right: ItemIdentifier | None,
    primary_columns: Sequence[str],
) -> bool:
    """判断两个标识是否指向同一条记录."""
    if left is None or right is None:
        return left is None and right is None
    return identifier_tuple(left, primary_columns) == identifier_tuple(right, primary_columns)


def lookup_argument(identifier: ItemIdentifier) -> Any:
    """转换为 `Session.get` 接受的主键参数."""
    if isinstance(identifier, CompositeKey):
        return dict(identifier.values)
    if isinstance(identifier, list):
        return tuple(identifier)
    return identifier


def exclusion_clause(source: Source, identifier: ItemIdentifier) -> ColumnElement[bool]:
    """构造排除指定记录的过滤条件.

    Raises:
        ConfigurationError: 复合主键却传入单值标识时抛出.

    """
    primary_columns = source.primary_columns
    if len(primary_columns) > 1:
        if not isinstance(identifier, (CompositeKey, Mapping, tuple, list)):
            raise ConfigurationError(message_key="MULTIPLE_PRIMARY_KEYS")
        values = identifier_values(identifier, primary_columns)
        return not_(
            and_(*(source.column(column) == value for column, value in zip(primary_columns, values, strict=True))),
        )
    return source.column(primary_columns[0]) != identifier


__all__ = [
    "CompositeKey",
    "ItemIdentifier",
    "exclusion_clause",
    "identifier_tuple",
    "identifier_values",
    "identifiers_match",
    "identity_of",
    "is_record",
    "lookup_argument",
    "primary_key_attributes",
]

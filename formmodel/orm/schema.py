"""Schema / Source / RecordSet.

职责:
- Schema 持有 SQLAlchemy 会话与 declarative registry,按类名或表名查找记录类型
- Source 描述单个映射类的列、主键、关联与唯一约束
- RecordSet 负责 Query 组装与读取,不做 commit
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import Index, UniqueConstraint, func, inspect as sa_inspect, select
from sqlalchemy.orm import Session, object_session, registry as Registry
from sqlalchemy.orm.exc import UnmappedColumnError

from formmodel.errors import ConfigurationError, SourceResolutionError
from formmodel.orm.keys import (
    CompositeKey,
    ItemIdentifier,
    identifier_values,
    lookup_argument,
    primary_key_attributes,
)
from formmodel.orm.relationships import RelationshipDescriptor, describe_relationship
from formmodel.utils.structlog_config import log_debug

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.orm import Mapper
    from sqlalchemy.sql.elements import ColumnElement

PRIMARY_CONSTRAINT = "primary"


def _resolve_registry(value: object) -> Registry | None:
    if value is None or isinstance(value, Registry):
        return value
    candidate = getattr(value, "registry", None)
    if isinstance(candidate, Registry):
        return candidate
    msg = f"无法从 {value!r} 获取 declarative registry"
    raise ConfigurationError(msg)


class Schema:
    """显式传递的 schema 上下文.

    Attributes:
        session: 读写使用的 SQLAlchemy 会话(可以是 scoped_session).
        registry: 用于按名称查找映射类的 declarative registry.

    """

    def __init__(self, session: Session, registry: object = None) -> None:
        self.session = session
        self.registry = _resolve_registry(registry)

    @classmethod
    def from_flask(cls, db: Any) -> Schema:
        """基于 Flask-SQLAlchemy 扩展实例构造 Schema."""
        return cls(db.session, db.Model)

    @classmethod
    def for_object(cls, instance: object) -> Schema:
        """基于持久化记录所在的会话构造 Schema.

        Raises:
            ConfigurationError: 记录未关联任何会话时抛出.

        """
        session = object_session(instance)
        if session is None:
            msg = f"记录 {instance!r} 未关联数据库会话"
            raise ConfigurationError(msg)
        return cls(session, sa_inspect(instance).mapper.registry)

    def current_session(self) -> Session:
        """返回实际使用的会话,scoped_session 会取出当前作用域内的会话."""
        current = self.session
        if not isinstance(current, Session) and callable(current):
            current = current()
        return current

    def uses_session(self, session: Session | None) -> bool:
        if session is None:
            return False
        return self.current_session() is session

    def source(self, name: str | type | Source) -> Source:
        """按映射类、类名或表名解析 Source.

        Raises:
            SourceResolutionError: 名称无法解析时抛出.

        """
        if isinstance(name, Source):
            return name
        if isinstance(name, type):
            mapper = sa_inspect(name, raiseerr=False)
            if mapper is None:
                msg = f"{name.__name__} 不是映射类"
                raise SourceResolutionError(msg)
            return Source(self, mapper)

        if self.registry is None:
            msg = f"未提供 registry,无法按名称 {name} 查找记录类型"
            raise ConfigurationError(msg)
        mappers = sorted(self.registry.mappers, key=lambda mapper: mapper.class_.__name__)
        for mapper in mappers:
            if mapper.class_.__name__ == name:
                return Source(self, mapper)
        for mapper in mappers:
            if getattr(mapper.local_table, "name", None) == name:
                return Source(self, mapper)
        msg = f"未知的记录类型: {name}"
        raise SourceResolutionError(msg)

    def resultset(self, name: str | type | Source) -> RecordSet:
        return self.source(name).resultset()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """在事务中执行写入.

        没有活动事务时开启新事务并在退出时提交,已有事务时使用 SAVEPOINT;
        任何异常都会回滚当前单元并继续向上抛出.
        """
        session = self.current_session()
        if session.in_transaction():
            log_debug("开启 SAVEPOINT", module="orm")
            with session.begin_nested():
                yield session
        else:
            log_debug("开启事务", module="orm")
            with session.begin():
                yield session


class Source:
    """单个映射类的 schema 元数据."""

    def __init__(self, schema: Schema, mapper: Mapper[Any]) -> None:
        self.schema = schema
        self.mapper = mapper
        self._unique_constraints: dict[str, list[str]] | None = None

    def __repr__(self) -> str:
        return f"<Source {self.name}>"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Source) and other.mapper is self.mapper

    def __hash__(self) -> int:
        return hash(self.mapper)

    @property
    def model(self) -> type:
        return self.mapper.class_

    @property
    def name(self) -> str:
        return self.model.__name__

    @property
    def table_name(self) -> str:
        return self.mapper.local_table.name

    @property
    def columns(self) -> list[str]:
        return [prop.key for prop in self.mapper.column_attrs]

    @property
    def primary_columns(self) -> list[str]:
        return primary_key_attributes(self.mapper)

    def has_column(self, name: str | None) -> bool:
        return bool(name) and name in self.mapper.column_attrs

    def column(self, name: str) -> Any:
        """返回列对应的 InstrumentedAttribute.

        Raises:
            ConfigurationError: 名称不是该记录类型的列时抛出.

        """
        if not self.has_column(name):
            msg = f"{self.name} 没有列 {name}"
            raise ConfigurationError(msg)
        return getattr(self.model, name)

    def has_relationship(self, name: str) -> bool:
        return name in self.mapper.relationships

    def relationship(self, name: str) -> RelationshipDescriptor | None:
        return describe_relationship(self.mapper, name)

    def related_source(self, name: str) -> Source | None:
        descriptor = self.relationship(name)
        if descriptor is None:
            return None
        return self.schema.source(descriptor.target)

    def unique_constraint_names(self) -> list[str]:
        """返回唯一约束名称,主键约束固定命名为 ``primary`` 并排在首位."""
        return list(self._load_unique_constraints())

    def unique_constraint_columns(self, name: str) -> list[str]:
        return list(self._load_unique_constraints().get(name, []))

    def resultset(self) -> RecordSet:
        return RecordSet(self)

    def _load_unique_constraints(self) -> dict[str, list[str]]:
        if self._unique_constraints is not None:
            return self._unique_constraints

        table = self.mapper.local_table
        declared: list[UniqueConstraint | Index] = [
            constraint for constraint in table.constraints if isinstance(constraint, UniqueConstraint)
        ]
        declared.extend(index for index in table.indexes if index.unique)

        found: dict[str, list[str]] = {}
        for constraint in declared:
            columns = list(constraint.columns)
            if not columns:
                continue
            try:
                attributes = [self.mapper.get_property_by_column(column).key for column in columns]
            except UnmappedColumnError:
                continue
            name = constraint.name if isinstance(constraint.name, str) and constraint.name else None
            found[name or "_".join([table.name, *(column.name for column in columns)])] = attributes

        self._unique_constraints = {PRIMARY_CONSTRAINT: self.primary_columns}
        self._unique_constraints.update(sorted(found.items()))
        return self._unique_constraints


class RecordSet:
    """Source 上的惰性查询."""

    def __init__(
        self,
        source: Source,
        criteria: Sequence[ColumnElement[bool]] = (),
        order_by: Sequence[Any] = (),
    ) -> None:
        self.source = source
        self._criteria = tuple(criteria)
        self._order_by = tuple(order_by)

    @property
    def session(self) -> Session:
        return self.source.schema.session

    def find(self, identifier: ItemIdentifier | None) -> Any | None:
        """按主键查找记录,不存在时返回 None.

        Raises:
            ConfigurationError: 复合主键却传入单值标识时抛出.

        """
        if identifier is None:
            return None
        primary_columns = self.source.primary_columns
        structured = isinstance(identifier, (CompositeKey, Mapping, tuple, list))
        if len(primary_columns) > 1 and not structured:
            raise ConfigurationError(message_key="MULTIPLE_PRIMARY_KEYS")

        if not self._criteria:
            return self.session.get(self.source.model, lookup_argument(identifier))

        values = identifier_values(identifier, primary_columns)
        clauses = [self.source.column(name) == value for name, value in zip(primary_columns, values, strict=True)]
        return self.search(*clauses).first()

    def search(self, *criteria: ColumnElement[bool], order_by: Sequence[Any] | Any = None) -> RecordSet:
        if order_by is None:
            ordering = self._order_by
        elif isinstance(order_by, (list, tuple)):
            ordering = tuple(order_by)
        else:
            ordering = (order_by,)
        return RecordSet(self.source, (*self._criteria, *criteria), ordering)

    def search_by(self, values: Mapping[str, Any]) -> RecordSet:
        return self.search(*(self.source.column(name) == value for name, value in values.items()))

    def statement(self) -> Select[Any]:
        stmt = select(self.source.model)
        if self._criteria:
            stmt = stmt.where(*self._criteria)
        if self._order_by:
            stmt = stmt.order_by(*(self._order_clause(item) for item in self._order_by))
        return stmt

    def count(self) -> int:
        stmt = select(func.count()).select_from(self.source.model)
        if self._criteria:
            stmt = stmt.where(*self._criteria)
        return int(self.session.scalar(stmt) or 0)

    def all(self) -> list[Any]:
        return list(self.session.scalars(self.statement()).all())

    def first(self) -> Any | None:
        return self.session.scalars(self.statement().limit(1)).first()

    def new_result(self, **values: Any) -> Any:
        return self.source.model(**values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.all())

    def _order_clause(self, item: Any) -> Any:
        if isinstance(item, str):
            return getattr(self.source.model, item)
        return item


__all__ = [
    "PRIMARY_CONSTRAINT",
    "RecordSet",
    "Schema",
    "Source",
]

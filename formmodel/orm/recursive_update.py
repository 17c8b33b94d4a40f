"""嵌套记录写入.

在一次调用中创建或更新根记录及其关联记录(记录图:节点为表行,边为外键关联).
本模块只修改会话中的对象,不 flush、不 commit,事务边界由调用方控制.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence, Set
from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect as sa_inspect

from formmodel.constants import ErrorMessages
from formmodel.errors import RecordUpdateError
from formmodel.orm.keys import identifiers_match, identity_of, is_record, lookup_argument, primary_key_attributes
from formmodel.orm.relationships import RelationshipDescriptor, RelationshipKind, describe_relationship
from formmodel.utils.structlog_config import log_debug

if TYPE_CHECKING:
    from sqlalchemy.orm import Mapper, Session

    from formmodel.types import PayloadMapping


def recursive_update(
    session: Session,
    model: type,
    updates: PayloadMapping | None,
    obj: object | None = None,
    *,
    unknown_params_ok: bool = False,
) -> Any:
    """创建或更新 ``model`` 记录及其嵌套关联记录.

    Args:
        session: 写入使用的会话.
        model: 根记录的映射类.
        updates: 字段名到取值的映射;关联字段可以是标识、记录实例、映射或它们的列表.
        obj: 需要更新的已有记录,缺省时按 ``updates`` 中的主键查找,找不到则新建.
        unknown_params_ok: 为 True 时忽略模型上不存在的字段,否则抛出异常.

    Returns:
        写入后的根记录(尚未 flush).

    Raises:
        RecordUpdateError: 存在未知字段或关联标识找不到记录时抛出.

    """
    mapper = sa_inspect(model)
    with session.no_autoflush:
        return _update_record(session, mapper, updates or {}, obj, unknown_params_ok=unknown_params_ok)


def _update_record(
    session: Session,
    mapper: Mapper[Any],
    updates: PayloadMapping,
    obj: object | None,
    *,
    unknown_params_ok: bool,
) -> Any:
    if obj is None:
        obj = _find_by_primary_key(session, mapper, updates)
    if obj is None:
        obj = mapper.class_()
    # 调用方传入的未保存记录同样需要写入
    if obj not in session:
        session.add(obj)

    columns: dict[str, Any] = {}
    relations: list[tuple[RelationshipDescriptor, Any]] = []
    unknown: list[str] = []
    for key, value in updates.items():
        if key in mapper.column_attrs:
            columns[key] = value
            continue
        descriptor = describe_relationship(mapper, key)
        if descriptor is None or descriptor.kind is RelationshipKind.COLUMN:
            unknown.append(key)
        else:
            relations.append((descriptor, value))

    if unknown:
        fields = sorted(unknown)
        if not unknown_params_ok:
            raise RecordUpdateError(
                ErrorMessages.UNKNOWN_UPDATE_PARAMS.format(fields=", ".join(fields)),
                extra={"model": mapper.class_.__name__, "fields": fields},
            )
        log_debug("忽略未知更新字段", module="orm", model=mapper.class_.__name__, fields=fields)

    for key, value in columns.items():
        setattr(obj, key, value)
    for descriptor, value in relations:
        _update_relation(session, obj, descriptor, value, unknown_params_ok=unknown_params_ok)
    return obj


def _update_relation(
    session: Session,
    obj: object,
    descriptor: RelationshipDescriptor,
    value: Any,
    *,
    unknown_params_ok: bool,
) -> None:
    target_mapper = sa_inspect(descriptor.target)
    current = getattr(obj, descriptor.name)

    if not descriptor.uselist:
        candidates = [] if current is None else [current]
        resolved = _resolve_member(
            session,
            target_mapper,
            value,
            candidates,
            reuse_unkeyed=True,
            unknown_params_ok=unknown_params_ok,
        )
        if resolved is not current:
            setattr(obj, descriptor.name, resolved)
        return

    members = list(current) if current is not None else []
    resolved_members = [
        _resolve_member(
            session,
            target_mapper,
            item,
            members,
            reuse_unkeyed=False,
            unknown_params_ok=unknown_params_ok,
        )
        for item in _as_list(value)
    ]
    resolved_members = [member for member in resolved_members if member is not None]
    if [id(member) for member in resolved_members] != [id(member) for member in members]:
        setattr(obj, descriptor.name, resolved_members)


def _resolve_member(
    session: Session,
    target_mapper: Mapper[Any],
    value: Any,
    candidates: Sequence[object],
    *,
    reuse_unkeyed: bool,
    unknown_params_ok: bool,
) -> Any:
    if value is None or is_record(value):
        return value
    if isinstance(value, Mapping):
        existing = _match_candidate(target_mapper, value, candidates, reuse_unkeyed=reuse_unkeyed)
        return _update_record(session, target_mapper, value, existing, unknown_params_ok=unknown_params_ok)

    record = session.get(target_mapper.class_, lookup_argument(value))
    if record is None:
        raise RecordUpdateError(
            ErrorMessages.RELATED_RECORD_NOT_FOUND.format(model=target_mapper.class_.__name__, identifier=value),
            extra={"model": target_mapper.class_.__name__, "identifier": str(value)},
        )
    return record


def _match_candidate(
    target_mapper: Mapper[Any],
    values: PayloadMapping,
    candidates: Sequence[object],
    *,
    reuse_unkeyed: bool,
) -> object | None:
    primary_columns = primary_key_attributes(target_mapper)
    if all(values.get(column) is None for column in primary_columns):
        # 单值关联未提供主键时沿用当前关联记录
        return candidates[0] if reuse_unkeyed and candidates else None
    for candidate in candidates:
        if identifiers_match(identity_of(candidate), values, primary_columns):
            return candidate
    return None


def _find_by_primary_key(session: Session, mapper: Mapper[Any], updates: PayloadMapping) -> Any | None:
    primary_columns = primary_key_attributes(mapper)
    values = [updates.get(column) for column in primary_columns]
    if any(value is None for value in values):
        return None
    return session.get(mapper.class_, values[0] if len(values) == 1 else tuple(values))


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes, Mapping)) or is_record(value):
        return [value]
    if isinstance(value, (Sequence, Set)):
        return list(value)
    return [value]


__all__ = ["recursive_update"]

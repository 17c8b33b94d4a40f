"""表单与 SQLAlchemy 记录的绑定.

---------------------------------
负责按主键定位记录、把记录取值写入字段、为关联字段加载选项、在保存前执行
唯一性校验,以及在单个事务内写入根记录与嵌套关联记录.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence, Set
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import object_session

from formmodel.constants import ErrorMessages
from formmodel.errors import ConfigurationError, FormModelError, SourceResolutionError
from formmodel.forms.fields import FieldOption
from formmodel.orm.keys import (
    CompositeKey,
    exclusion_clause,
    identifiers_match,
    identity_of,
    is_record,
)
from formmodel.orm.recursive_update import recursive_update
from formmodel.orm.schema import PRIMARY_CONSTRAINT, RecordSet, Schema, Source
from formmodel.settings import get_settings
from formmodel.utils.structlog_config import log_debug, log_error, log_info

if TYPE_CHECKING:
    from formmodel.forms.fields import FormField
    from formmodel.orm.keys import ItemIdentifier
    from formmodel.types import PayloadValue


class ModelBindingMixin:
    """为表单提供数据库记录绑定能力.

    需要与 `BaseForm` 组合使用,覆盖其记录槽位与模型钩子.

    Attributes:
        schema: 显式传递的 schema 上下文.
        item_class: 记录类型(映射类、类名或表名).
        source_name: 查找 source 使用的名称,缺省使用 item_class.
        unique_messages: 按唯一约束名覆盖的错误文案.
        rec_update_flags: 传递给嵌套写入的参数.
        active_column: 表单级的启用列,优先于字段上的配置.

    """

    schema: Schema | None = None
    item_class: str | type | None = None
    source_name: str | type | None = None
    active_column: str | None = None

    def __init__(
        self,
        *,
        schema: Schema | None = None,
        item_class: str | type | None = None,
        source_name: str | type | None = None,
        unique_messages: Mapping[str, str] | None = None,
        rec_update_flags: Mapping[str, Any] | None = None,
        active_column: str | None = None,
        **kwargs: Any,
    ) -> None:
        if schema is not None:
            self.schema = schema
        if item_class is not None:
            self.item_class = item_class
        if source_name is not None:
            self.source_name = source_name
        if active_column is not None:
            self.active_column = active_column
        self.unique_messages: dict[str, str] = dict(unique_messages or {})
        self.rec_update_flags: dict[str, Any] = self._build_rec_update_flags()
        self.rec_update_flags.update(rec_update_flags or {})
        self._unique_constraints: list[str] | None = None
        super().__init__(**kwargs)

    # --------------------------------------------------------------------- #
    # 记录定位
    # --------------------------------------------------------------------- #
    def build_item(self) -> Any:
        """按当前标识加载记录,找不到时清空绑定."""
        item_id = self._item_id
        if item_id is None:
            return None

        item = self.resultset().find(item_id)
        if item is None:
            log_debug("未找到绑定记录", module="forms", form=self.name, item_id=str(item_id))
            self.item = None
        return item

    def set_item(self, item: Any) -> None:
        """记录新绑定记录的标识、类型与 schema."""
        if item is None:
            return

        self._item_id = identity_of(item)
        source = self._source_for_record(item)
        self.item_class = source.model
        self.source_name = None
        self._unique_constraints = None

    def set_item_id(self, item_id: ItemIdentifier | None) -> None:
        """新标识与已绑定记录不一致时丢弃记录,避免沿用过期对象."""
        item = self._item
        if item is None:
            return
        if item_id is None:
            self.clear_item()
            return

        primary_columns = self.source().primary_columns
        if not identifiers_match(item_id, identity_of(item), primary_columns):
            self.clear_item()

    def clear_model(self) -> None:
        self.item = None
        self.item_id = None

    # --------------------------------------------------------------------- #
    # Source
    # --------------------------------------------------------------------- #
    def source(self, name: str | type | None = None) -> Source:
        schema = self._require_schema()
        target = name or self.source_name or self.item_class
        if target is None:
            msg = f"表单 {self.name} 未配置 item_class"
            raise ConfigurationError(msg)
        return schema.source(target)

    def resultset(self) -> RecordSet:
        return self.source().resultset()

    def get_source(self, accessor_path: str | None = None) -> Source | None:
        """返回表单记录类型的 source,可沿点分隔的关联路径继续解析.

        Raises:
            SourceResolutionError: 路径中的某一段无法解析时抛出.

        """
        if self.schema is None:
            return None

        source = self.source()
        if not accessor_path:
            return source

        for accessor in accessor_path.split("."):
            related = self._get_related_source(source, accessor)
            if related is None:
                raise SourceResolutionError(ErrorMessages.RELATED_SOURCE_NOT_FOUND.format(accessor=accessor))
            source = related
        return source

    @property
    def unique_constraints(self) -> list[str]:
        if self._unique_constraints is None:
            names = self.resultset().source.unique_constraint_names()
            self._unique_constraints = [name for name in names if name != PRIMARY_CONSTRAINT]
        return self._unique_constraints

    def unique_message_for_constraint(self, constraint: str) -> str:
        return self.unique_messages.setdefault(constraint, get_settings().unique_constraint_message)

    def set_rec_update_flag(self, key: str, value: Any) -> None:
        self.rec_update_flags[key] = value

    # --------------------------------------------------------------------- #
    # 字段取值
    # --------------------------------------------------------------------- #
    def init_value(self, form_field: FormField, value: PayloadValue) -> None:
        if _is_list_like(value):
            value = [self._fix_value(form_field, part) for part in value]
        else:
            value = self._fix_value(form_field, value)
        super().init_value(form_field, value)

    def lookup_options(self, form_field: FormField, accessor_path: str | None = None) -> list[FieldOption] | None:
        """为关联字段构造 (标识, 标签) 选项.

        停用的关联记录默认不出现在选项中,但字段当前取值对应的记录会保留,
        并以 ``[标签]`` 的形式标注.

        Returns:
            选项列表;schema 缺失、访问器无法解析或标签列不存在时返回 None.

        """
        if self.schema is None:
            return None

        self_source = self.get_source(accessor_path)
        source = self._get_related_source(self_source, form_field.accessor)
        if source is None:
            return None

        label_column = form_field.label_column
        if not (source.has_column(label_column) or hasattr(source.model, label_column)):
            return None

        active_column = self.active_column or form_field.active_column
        if not source.has_column(active_column):
            active_column = None

        primary_key = source.primary_columns[0]
        sort_column = form_field.sort_column
        if sort_column is None:
            sort_column = label_column if source.has_column(label_column) else primary_key

        rs = source.resultset()
        if active_column:
            conditions = [source.column(active_column).is_(True)]
            current = form_field.init_value
            if self.item is not None and current is not None:
                key_column = source.column(primary_key)
                if _is_list_like(current):
                    conditions.append(key_column.in_(list(current)))
                else:
                    conditions.append(key_column == current)
            rs = rs.search(or_(*conditions))

        options: list[FieldOption] = []
        for row in rs.search(order_by=sort_column).all():
            label = getattr(row, label_column)
            if label is None:
                continue
            if active_column and not getattr(row, active_column):
                label = f"[{label}]"
            options.append(FieldOption(value=identity_of(row), label=str(label)))

        log_debug(
            "加载关联选项",
            module="forms",
            form=self.name,
            field=form_field.name,
            source=source.name,
            count=len(options),
        )
        return options

    # --------------------------------------------------------------------- #
    # 保存
    # --------------------------------------------------------------------- #
    def update_model(self) -> Any:
        """在单个事务内写入根记录与嵌套关联记录.

        Returns:
            写入后的记录,同时成为表单的绑定记录.

        Raises:
            SQLAlchemyError: 事务失败时记录日志后原样抛出,之前绑定的记录保持不变.
            RecordUpdateError: 存在未知字段或关联记录缺失时抛出,同样会记录日志.

        """
        schema = self._require_schema()
        source = self.source()
        item = self.item

        if self.verbose:
            log_info("update_model", module="forms", form=self.name, source=source.name)

        flags = dict(self.rec_update_flags)
        new_item = None
        try:
            with schema.transaction() as session:
                new_item = recursive_update(session, source.model, self.values, obj=item, **flags)
                session.flush()
                session.refresh(new_item)
        except (SQLAlchemyError, FormModelError) as exc:
            context = {"error_category": exc.category.value, **exc.extra} if isinstance(exc, FormModelError) else {}
            log_error("表单保存失败", module="forms", exception=exc, form=self.name, source=source.name, **context)
            raise

        if new_item is not None:
            self.item = new_item
        return self.item

    # --------------------------------------------------------------------- #
    # 唯一性校验
    # --------------------------------------------------------------------- #
    def validate_model(self) -> bool:
        return self.validate_unique()

    def validate_unique(self) -> bool:
        """执行字段级与约束级唯一性校验,错误写入对应字段.

        Returns:
            未发现重复值时返回 True.

        """
        rs = self.resultset()
        source = rs.source
        settings = get_settings()
        id_clause = []
        item = self.item
        if item is not None:
            id_clause.append(exclusion_clause(source, identity_of(item)))

        found_error = 0
        for form_field in self.fields:
            if not form_field.unique:
                continue
            if form_field.inactive or not form_field.has_result or form_field.has_errors():
                continue
            value = form_field.value
            if value is None:
                continue

            count = rs.search(source.column(form_field.accessor) == value, *id_clause).count()
            if count < 1:
                continue

            message = form_field.get_message("unique") or form_field.unique_message or settings.unique_message
            form_field.add_error(message, form_field.loc_label)
            found_error += 1

        submitted = self.value
        for constraint in self.unique_constraints:
            columns = source.unique_constraint_columns(constraint)
            form_field = None
            for column in columns:
                form_field = next((candidate for candidate in self.fields if candidate.accessor == column), None)
                if form_field is not None:
                    break

            if form_field is None or form_field.has_unique:
                continue

            values = [self._constraint_value(submitted, column) for column in columns]
            if any(value is None for value in values):
                continue

            criteria = [source.column(column) == value for column, value in zip(columns, values, strict=True)]
            count = rs.search(*criteria).search(*id_clause).count()
            if count < 1:
                continue

            form_field.add_error(self.unique_message_for_constraint(constraint), constraint)
            found_error += 1

        if found_error:
            log_debug("唯一性校验失败", module="forms", form=self.name, errors=found_error)
        return found_error == 0

    # --------------------------------------------------------------------- #
    # Helpers
    # --------------------------------------------------------------------- #
    def _build_rec_update_flags(self) -> dict[str, Any]:
        return {"unknown_params_ok": get_settings().unknown_params_ok}

    def _require_schema(self) -> Schema:
        if self.schema is None:
            raise ConfigurationError(message_key="SCHEMA_REQUIRED")
        return self.schema

    def _source_for_record(self, item: Any) -> Source:
        session = object_session(item)
        if self.schema is None or (session is not None and not self.schema.uses_session(session)):
            self.schema = Schema.for_object(item)
        return self.schema.source(type(item))

    def _fix_value(self, form_field: FormField, value: PayloadValue) -> PayloadValue:
        del form_field
        return identity_of(value) if is_record(value) else value

    def _get_related_source(self, source: Source, name: str) -> Source | None:
        return source.related_source(name)

    def _constraint_value(self, submitted: Mapping[str, Any], column: str) -> Any:
        value = submitted.get(column)
        if value is None and self._item is not None:
            value = getattr(self._item, column)
        return value


def _is_list_like(value: object) -> bool:
    if isinstance(value, (str, bytes, Mapping, CompositeKey)) or is_record(value):
        return False
    return isinstance(value, (Sequence, Set))


__all__ = ["ModelBindingMixin"]

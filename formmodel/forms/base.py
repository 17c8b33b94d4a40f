"""表单基类.

---------------------------------
负责字段复制、参数清理、必填校验与处理流程编排.模型相关的行为通过钩子
(build_item、set_item、set_item_id、lookup_options、validate_model、update_model)
由组合进来的绑定类实现.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

from formmodel.forms.fields import FormField
from formmodel.settings import get_settings
from formmodel.types import MutablePayloadDict, PayloadMapping, PayloadValue
from formmodel.utils.structlog_config import log_debug


class BaseForm:
    """表单基类.

    子类通过 ``field_list`` 声明字段,每个实例持有字段的独立副本.

    Attributes:
        name: 表单名称,用于日志.
        field_list: 字段定义模板.
        verbose: 为 True 时以 info 级别输出处理日志.

    """

    name: str = "form"
    field_list: ClassVar[Sequence[FormField]] = ()
    verbose: bool = False

    def __init__(
        self,
        *,
        name: str | None = None,
        fields: Sequence[FormField] | None = None,
        verbose: bool | None = None,
        item: object | None = None,
        item_id: Any = None,
    ) -> None:
        self.name = name or self.name
        if verbose is not None:
            self.verbose = verbose
        self.fields: list[FormField] = [
            copy.deepcopy(form_field) for form_field in (fields if fields is not None else self.field_list)
        ]
        self.submitted = False
        self.validated = False
        self._item: Any = None
        self._item_id: Any = None
        self._loaded_options: set[str] = set()
        if item_id is not None:
            self.item_id = item_id
        if item is not None:
            self.item = item

    # --------------------------------------------------------------------- #
    # 记录槽位
    # --------------------------------------------------------------------- #
    @property
    def item(self) -> Any:
        if self._item is None and self._item_id is not None:
            self._item = self.build_item()
        return self._item

    @item.setter
    def item(self, value: Any) -> None:
        self._item = value
        if value is None:
            self._item_id = None
        else:
            self.set_item(value)

    @property
    def item_id(self) -> Any:
        return self._item_id

    @item_id.setter
    def item_id(self, value: Any) -> None:
        self.set_item_id(value)
        self._item_id = value
        if value is None:
            self._item = None

    def clear_item(self) -> None:
        """丢弃缓存的记录,下次读取时按当前标识重新加载."""
        self._item = None

    # --------------------------------------------------------------------- #
    # 钩子
    # --------------------------------------------------------------------- #
    def build_item(self) -> Any:
        return None

    def set_item(self, item: Any) -> None:
        del item

    def set_item_id(self, item_id: Any) -> None:
        del item_id

    def lookup_options(self, form_field: FormField, accessor_path: str | None = None) -> list | None:
        del form_field, accessor_path
        return None

    def validate_model(self) -> bool:
        return True

    def update_model(self) -> Any:
        return None

    # --------------------------------------------------------------------- #
    # 字段
    # --------------------------------------------------------------------- #
    def field(self, name: str) -> FormField:
        for form_field in self.fields:
            if form_field.name == name:
                return form_field
        msg = f"表单 {self.name} 没有字段 {name}"
        raise KeyError(msg)

    def active_fields(self) -> list[FormField]:
        return [form_field for form_field in self.fields if not form_field.inactive]

    @property
    def value(self) -> MutablePayloadDict:
        """已提交字段的取值,按记录属性名组织."""
        return {
            form_field.accessor: form_field.value for form_field in self.active_fields() if form_field.has_result
        }

    @property
    def values(self) -> MutablePayloadDict:
        return self.value

    @property
    def has_errors(self) -> bool:
        return any(form_field.has_errors() for form_field in self.fields)

    @property
    def errors(self) -> dict[str, list[str]]:
        return {form_field.name: list(form_field.errors) for form_field in self.fields if form_field.errors}

    def init_value(self, form_field: FormField, value: PayloadValue) -> None:
        form_field.init_value = value
        form_field.value = value

    def init_from_object(self, item: object) -> None:
        for form_field in self.fields:
            if hasattr(item, form_field.accessor):
                self.init_value(form_field, getattr(item, form_field.accessor))

    def build_options(self) -> None:
        for form_field in self.active_fields():
            if not form_field.component.has_options or form_field.options:
                continue
            options = self.lookup_options(form_field)
            if options is not None:
                form_field.options = options
                self._loaded_options.add(form_field.name)

    # --------------------------------------------------------------------- #
    # 主流程
    # --------------------------------------------------------------------- #
    def process(
        self,
        params: PayloadMapping | None = None,
        *,
        item: object | None = None,
        item_id: Any = None,
        schema: Any = None,
    ) -> bool:
        """处理一次表单请求.

        执行完整流程: 初始化 -> 加载选项 -> 应用参数 -> 校验 -> 保存.

        Args:
            params: 提交的参数,为 None 时只做初始化(展示场景).
            item: 需要编辑的记录.
            item_id: 需要编辑的记录标识.
            schema: 可选的 schema 上下文.

        Returns:
            提交并校验通过时返回 True.

        """
        self.clear_state()
        self.setup_form(params, schema=schema, item_id=item_id, item=item)
        if not self.submitted:
            return False

        self.validate_form()
        if self.validated:
            self.update_model()

        log_debug("表单处理完成", module="forms", form=self.name, validated=self.validated, errors=self.errors)
        return self.validated

    def setup_form(self, params: PayloadMapping | None = None, **attrs: Any) -> None:
        for key, value in attrs.items():
            if value is not None:
                setattr(self, key, value)

        item = self.item
        if item is not None:
            self.init_from_object(item)
        else:
            for form_field in self.fields:
                if form_field.default is not None:
                    self.init_value(form_field, form_field.default)

        self.build_options()

        if params is not None:
            self.submitted = True
            self._apply_params(params)

    def validate_form(self) -> bool:
        required_message = get_settings().required_message
        for form_field in self.active_fields():
            if form_field.required and _is_empty(form_field.value):
                form_field.add_error(required_message, form_field.loc_label)

        model_valid = self.validate_model()
        self.validated = model_valid and not self.has_errors
        return self.validated

    def clear_state(self) -> None:
        for form_field in self.fields:
            form_field.reset()
            if form_field.name in self._loaded_options:
                form_field.options = []
        self._loaded_options.clear()
        self.submitted = False
        self.validated = False

    # --------------------------------------------------------------------- #
    # Helpers
    # --------------------------------------------------------------------- #
    def _apply_params(self, params: PayloadMapping) -> None:
        for form_field in self.active_fields():
            if form_field.name not in params:
                continue
            form_field.value = _clean_value(params[form_field.name])
            form_field.has_result = True


def _clean_value(value: PayloadValue) -> PayloadValue:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (list, tuple)):
        cleaned = [_clean_value(part) for part in value]
        return [part for part in cleaned if part is not None]
    if isinstance(value, Mapping):
        return {key: _clean_value(part) for key, part in value.items()}
    return value


def _is_empty(value: PayloadValue) -> bool:
    return value is None or value == [] or value == {}


__all__ = ["BaseForm"]

"""表单字段模型.

字段同时承载静态描述(标签、控件、关联列配置)与单次请求内的状态(取值、错误).
表单实例化时会复制字段定义,状态不会在多个表单实例之间共享.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from formmodel.settings import get_settings
from formmodel.types import PayloadValue


class FieldComponent(str, Enum):
    """表单控件类型."""

    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTISELECT = "multiselect"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    HIDDEN = "hidden"

    @property
    def has_options(self) -> bool:
        return self in (FieldComponent.SELECT, FieldComponent.MULTISELECT)


@dataclass(slots=True)
class FieldOption:
    """下拉或多选项描述."""

    value: object
    label: str


def _default_label_column() -> str:
    return get_settings().default_label_column


def _default_active_column() -> str:
    return get_settings().default_active_column


@dataclass(slots=True)
class FormField:
    """单个字段的元数据与状态.

    Attributes:
        name: 字段名,也是提交参数中的键.
        label: 展示标签,缺省使用字段名.
        accessor: 记录上的属性名,缺省使用字段名.
        label_column: 关联记录上用作选项文本的列.
        active_column: 关联记录上标记是否启用的列.
        sort_column: 选项排序列,缺省依次使用标签列、主键.
        unique: 是否校验唯一性,None 表示未声明.
        unique_message: 唯一性错误文案,``{0}`` 会替换为字段标签.
        messages: 按错误类型覆盖的文案(如 ``unique``).
        inactive: 为 True 时字段不参与提交与校验.

    """

    name: str
    label: str = ""
    component: FieldComponent = FieldComponent.TEXT
    required: bool = False
    accessor: str = ""
    default: object | None = None
    label_column: str = field(default_factory=_default_label_column)
    active_column: str = field(default_factory=_default_active_column)
    sort_column: str | None = None
    unique: bool | None = None
    unique_message: str | None = None
    messages: dict[str, str] = field(default_factory=dict)
    inactive: bool = False
    options: list[FieldOption] = field(default_factory=list)

    value: PayloadValue = None
    init_value: PayloadValue = None
    has_result: bool = False
    errors: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.label = self.label or self.name
        self.accessor = self.accessor or self.name

    @property
    def loc_label(self) -> str:
        return self.label

    @property
    def has_unique(self) -> bool:
        return self.unique is not None

    def has_errors(self) -> bool:
        return bool(self.errors)

    def get_message(self, key: str) -> str | None:
        return self.messages.get(key)

    def add_error(self, message: str, *args: object) -> None:
        """写入一条字段错误,``args`` 依次填充文案中的 ``{0}``、``{1}``."""
        self.errors.append(message.format(*args) if args else message)

    def reset(self) -> None:
        self.value = None
        self.init_value = None
        self.has_result = False
        self.errors = []


__all__ = [
    "FieldComponent",
    "FieldOption",
    "FormField",
]

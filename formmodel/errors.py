"""formmodel - 统一异常定义.

说明:
- 本模块只负责定义异常类型与语义字段,不包含 HTTP/Flask 等框架细节.
- 唯一性校验失败不会抛出异常,而是作为字段错误累积在表单字段上.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from formmodel.constants import ErrorCategory, ErrorMessages, ErrorSeverity

if TYPE_CHECKING:
    from formmodel.types.structures import LoggerExtra


@dataclass(frozen=True, slots=True)
class ExceptionMetadata:
    """异常的元信息."""

    category: ErrorCategory
    severity: ErrorSeverity
    default_message_key: str


class FormModelError(Exception):
    """formmodel 的基础异常.

    文案缺省时按 ``message_key`` 从 `ErrorMessages` 取得,分类与严重度由子类的
    ``metadata`` 决定.

    Attributes:
        message: 错误文案.
        message_key: 文案对应的消息键.
        extra: 写入结构化日志的附加字段.

    """

    metadata = ExceptionMetadata(
        category=ErrorCategory.SYSTEM,
        severity=ErrorSeverity.HIGH,
        default_message_key="INTERNAL_ERROR",
    )

    def __init__(
        self,
        message: str | None = None,
        *,
        message_key: str | None = None,
        extra: LoggerExtra | None = None,
    ) -> None:
        self.message_key = message_key or self.metadata.default_message_key
        self.message = message or getattr(ErrorMessages, self.message_key, ErrorMessages.INTERNAL_ERROR)
        self.extra = dict(extra or {})
        super().__init__(self.message)

    @property
    def category(self) -> ErrorCategory:
        return self.metadata.category

    @property
    def severity(self) -> ErrorSeverity:
        return self.metadata.severity


class ConfigurationError(FormModelError):
    """表示表单与 schema 的绑定配置错误,调用方不应继续执行."""

    metadata = ExceptionMetadata(
        category=ErrorCategory.CONFIGURATION,
        severity=ErrorSeverity.HIGH,
        default_message_key="SCHEMA_REQUIRED",
    )


class SourceResolutionError(ConfigurationError):
    """表示记录类型或关联路径无法解析为 source."""

    metadata = ExceptionMetadata(
        category=ErrorCategory.CONFIGURATION,
        severity=ErrorSeverity.HIGH,
        default_message_key="SOURCE_NOT_FOUND",
    )


class RecordUpdateError(FormModelError):
    """表示嵌套记录写入时的数据错误(未知字段、关联记录缺失等)."""

    metadata = ExceptionMetadata(
        category=ErrorCategory.DATABASE,
        severity=ErrorSeverity.HIGH,
        default_message_key="RECORD_UPDATE_FAILED",
    )


__all__ = [
    "ConfigurationError",
    "ExceptionMetadata",
    "FormModelError",
    "RecordUpdateError",
    "SourceResolutionError",
]

"""formmodel - 常量定义模块

统一管理错误分类、严重度与面向用户的提示文案.
"""

from enum import Enum


class LogLevel(Enum):
    """日志级别枚举."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ErrorCategory(Enum):
    """错误分类枚举."""

    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    DATABASE = "database"
    SYSTEM = "system"


class ErrorSeverity(Enum):
    """错误严重程度枚举."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# 错误消息常量
class ErrorMessages:
    """错误消息常量.

    带 ``{0}`` 占位符的文案会在写入字段错误时用字段标签或约束名填充.
    """

    # 通用错误
    INTERNAL_ERROR = "内部错误"
    VALIDATION_ERROR = "数据验证失败"

    # 配置错误
    SCHEMA_REQUIRED = "必须为表单提供 schema"
    SOURCE_NOT_FOUND = "无法获取记录类型的 source"
    RELATED_SOURCE_NOT_FOUND = "无法获取 {accessor} 的 source"
    MULTIPLE_PRIMARY_KEYS = "复合主键必须使用结构化标识,单值标识无效"

    # 数据库错误
    RECORD_UPDATE_FAILED = "记录保存失败"
    UNKNOWN_UPDATE_PARAMS = "未知的更新字段: {fields}"
    RELATED_RECORD_NOT_FOUND = "关联记录不存在: {model}({identifier})"

    # 字段错误
    FIELD_REQUIRED = "{0} 为必填项"
    DUPLICATE_VALUE = "{0} 的值已存在"
    DUPLICATE_CONSTRAINT = "违反唯一约束 {0}: 已存在相同的记录"


__all__ = [
    "ErrorCategory",
    "ErrorMessages",
    "ErrorSeverity",
    "LogLevel",
]

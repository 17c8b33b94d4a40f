"""formmodel - 统一配置读取与校验.

说明:
- Settings 使用 `pydantic-settings` 的 `BaseSettings` 从环境变量与本地 `.env`(可选)读取配置.
- 所有环境变量均以 `FORMMODEL_` 为前缀,避免与宿主应用的配置冲突.
- 表单绑定层只通过 `get_settings()` 读取配置,不直接访问环境变量.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from formmodel.constants import ErrorMessages, LogLevel

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DOTENV_PATH = PROJECT_ROOT / ".env"

APP_NAME = "formmodel"
APP_VERSION = "0.1.0"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LABEL_COLUMN = "name"
DEFAULT_ACTIVE_COLUMN = "is_active"


class Settings(BaseSettings):
    """表单绑定层运行时设置集合."""

    model_config = SettingsConfigDict(
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        str_strip_whitespace=True,
    )

    log_level: str = Field(default=DEFAULT_LOG_LEVEL, validation_alias="FORMMODEL_LOG_LEVEL")
    log_json: bool = Field(default=False, validation_alias="FORMMODEL_LOG_JSON")

    # 嵌套写入时是否忽略模型上不存在的字段
    unknown_params_ok: bool = Field(default=True, validation_alias="FORMMODEL_UNKNOWN_PARAMS_OK")

    unique_message: str = Field(
        default=ErrorMessages.DUPLICATE_VALUE,
        validation_alias="FORMMODEL_UNIQUE_MESSAGE",
    )
    unique_constraint_message: str = Field(
        default=ErrorMessages.DUPLICATE_CONSTRAINT,
        validation_alias="FORMMODEL_UNIQUE_CONSTRAINT_MESSAGE",
    )
    required_message: str = Field(
        default=ErrorMessages.FIELD_REQUIRED,
        validation_alias="FORMMODEL_REQUIRED_MESSAGE",
    )

    default_label_column: str = Field(default=DEFAULT_LABEL_COLUMN, validation_alias="FORMMODEL_LABEL_COLUMN")
    default_active_column: str = Field(default=DEFAULT_ACTIVE_COLUMN, validation_alias="FORMMODEL_ACTIVE_COLUMN")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in LogLevel.__members__:
            msg = f"无效的日志级别: {value}"
            raise ValueError(msg)
        return normalized

    @classmethod
    def load(cls) -> Settings:
        """从环境变量加载 Settings 并执行必要校验."""
        load_dotenv(dotenv_path=DOTENV_PATH if DOTENV_PATH.exists() else None, override=False)
        return cls()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """返回进程内共享的 Settings(首次调用时加载)."""
    return Settings.load()


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "Settings",
    "get_settings",
]

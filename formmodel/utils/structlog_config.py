"""formmodel 的结构化日志配置与辅助函数."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, cast

import structlog
from flask import current_app, has_app_context, has_request_context, request

from formmodel.settings import APP_NAME, APP_VERSION, get_settings
from formmodel.types import JsonValue, LoggerExtra, StructlogEventDict

if TYPE_CHECKING:
    from structlog.typing import BindableLogger, Processor

LogField = JsonValue | LoggerExtra | object
LOGGER_NAMESPACE = "formmodel"


class StructlogConfig:
    """structlog 配置核心类.

    负责配置处理器链与标准库日志级别,可以多次调用,只会配置一次.

    Attributes:
        configured: 是否已配置标志.

    Example:
        >>> config = StructlogConfig()
        >>> config.configure()
        >>> logger = get_logger('orm')

    """

    def __init__(self) -> None:
        self.configured = False

    def configure(self) -> None:
        """初始化 structlog 处理器(幂等).

        Returns:
            None.

        """
        if self.configured:
            return

        settings = get_settings()
        logging.getLogger(LOGGER_NAMESPACE).setLevel(getattr(logging, settings.log_level, logging.INFO))

        processors = [
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            self._add_request_context,
            self._add_global_context,
            self._get_renderer(json_output=settings.log_json),
        ]
        structlog.configure(
            processors=cast("list[structlog.types.Processor]", processors),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        self.configured = True

    @staticmethod
    def _add_request_context(
        _logger: BindableLogger,
        _method_name: str,
        event_dict: StructlogEventDict,
    ) -> StructlogEventDict:
        """在 Flask 请求内写入请求方法与路径.

        Args:
            _logger: 当前 logger 实例.
            _method_name: 调用的方法名.
            event_dict: structlog 事件字典.

        Returns:
            更新后的事件字典.

        """
        if has_request_context():
            event_dict["request_method"] = request.method
            event_dict["request_path"] = request.path
        return event_dict

    @staticmethod
    def _add_global_context(
        _logger: BindableLogger,
        _method_name: str,
        event_dict: StructlogEventDict,
    ) -> StructlogEventDict:
        """附加包名、版本与宿主应用名称."""
        event_dict["lib_name"] = APP_NAME
        event_dict["lib_version"] = APP_VERSION
        if has_app_context():
            event_dict["flask_app"] = current_app.name

        event_dict["logger_name"] = getattr(_logger, "name", "unknown")
        return event_dict

    @staticmethod
    def _get_renderer(*, json_output: bool) -> Processor:
        """根据配置与终端能力返回渲染器."""
        if json_output:
            return structlog.processors.JSONRenderer(ensure_ascii=False)
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


structlog_config = StructlogConfig()


def configure_structlog() -> None:
    """配置 structlog(幂等)."""
    structlog_config.configure()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """获取结构化日志记录器.

    Args:
        name: 日志记录器名称,会挂在 ``formmodel`` 命名空间下.

    Returns:
        绑定的 structlog 日志记录器实例.

    Example:
        >>> logger = get_logger('forms')
        >>> logger.info('表单保存成功', form='book')

    """
    structlog_config.configure()
    return structlog.get_logger(f"{LOGGER_NAMESPACE}.{name}")


def log_info(message: str, module: str = "formmodel", **kwargs: LogField) -> None:
    """记录信息级别日志.

    Args:
        message: 日志消息.
        module: 模块名称.
        **kwargs: 额外的上下文信息.

    """
    get_logger(module).info(message, module=module, **kwargs)


def log_warning(
    message: str,
    module: str = "formmodel",
    exception: Exception | None = None,
    **kwargs: LogField,
) -> None:
    """记录警告级别日志."""
    logger = get_logger(module)
    if exception:
        logger.warning(message, module=module, exception=str(exception), **kwargs)
    else:
        logger.warning(message, module=module, **kwargs)


def log_error(
    message: str,
    module: str = "formmodel",
    exception: Exception | None = None,
    **kwargs: LogField,
) -> None:
    """记录错误级别日志.

    Args:
        message: 日志消息.
        module: 模块名称.
        exception: 可选的异常对象,会记录堆栈信息.
        **kwargs: 额外的上下文信息.

    Example:
        >>> try:
        ...     form.update_model()
        ... except SQLAlchemyError as e:
        ...     log_error('表单保存失败', module='forms', exception=e)

    """
    logger = get_logger(module)
    if exception:
        logger.error(message, module=module, error=str(exception), exc_info=exception, **kwargs)
    else:
        logger.error(message, module=module, **kwargs)


def log_debug(message: str, module: str = "formmodel", **kwargs: LogField) -> None:
    """记录调试级别日志."""
    get_logger(module).debug(message, module=module, **kwargs)


__all__ = [
    "configure_structlog",
    "get_logger",
    "log_debug",
    "log_error",
    "log_info",
    "log_warning",
]

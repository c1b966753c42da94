"""日志配置：控制台彩色输出、按天滚动的文件日志，以及可选的 JSON 结构化格式。

所有业务日志都挂在 ``app`` 之下，组件通过 ``get_logger("reconcile")`` 这类子 logger
输出，方便按组件调整级别。每条记录都会带上当前请求的 request_id。
"""

import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime
from typing import Optional

from .config import get_settings

ROOT_LOGGER_NAME = "app"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class _LocalTimeFormatter(logging.Formatter):
    """按配置时区渲染时间戳。"""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        stamp = datetime.fromtimestamp(record.created, get_settings().timezone_info)
        if datefmt:
            return stamp.strftime(datefmt)
        return stamp.isoformat(sep=" ", timespec="milliseconds")


class ColorFormatter(_LocalTimeFormatter):
    """终端输出时按级别着色；输出被重定向时自动关闭颜色。"""

    RESET = "\033[0m"
    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }

    def __init__(self, fmt: str, datefmt: Optional[str] = None, use_colors: Optional[bool] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = sys.stderr.isatty() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{text}{self.RESET}" if color else text


class JsonFormatter(_LocalTimeFormatter):
    """每条日志输出为一行 JSON，便于采集系统解析。"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record),
            "logger": record.name,
            "level": record.levelname,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # 计时器线程中的自动保存没有请求上下文，显示为 "-"
        record.request_id = _request_id_ctx.get() or "-"
        return True


def setup_logging() -> None:
    """根据 Settings 安装全局日志配置。"""
    settings = get_settings()
    settings.log_directory.mkdir(parents=True, exist_ok=True)

    console_formatter = "json" if settings.log_json else "color"
    file_formatter = "json" if settings.log_json else "plain"
    handlers = ["console", "file"]

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "request_id": {"()": "app.packages.workspace.core.logger.RequestIdFilter"},
            },
            "formatters": {
                "color": {"()": "app.packages.workspace.core.logger.ColorFormatter", "fmt": LOG_FORMAT},
                "plain": {"()": "app.packages.workspace.core.logger._LocalTimeFormatter", "fmt": LOG_FORMAT},
                "json": {"()": "app.packages.workspace.core.logger.JsonFormatter"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": settings.log_level,
                    "formatter": console_formatter,
                    "filters": ["request_id"],
                },
                "file": {
                    "class": "logging.handlers.TimedRotatingFileHandler",
                    "level": settings.log_level,
                    "formatter": file_formatter,
                    "filters": ["request_id"],
                    "filename": str(settings.log_file_path),
                    "when": "midnight",
                    "backupCount": 14,
                    "encoding": "utf-8",
                    "delay": True,
                },
            },
            "loggers": {
                ROOT_LOGGER_NAME: {"handlers": handlers, "level": settings.log_level, "propagate": False},
                "uvicorn": {"handlers": handlers, "level": settings.log_level, "propagate": False},
                "uvicorn.access": {"handlers": handlers, "level": settings.log_level, "propagate": False},
                # SQL 语句只在 DATABASE_ECHO 打开时输出
                "sqlalchemy.engine": {
                    "handlers": handlers,
                    "level": "INFO" if settings.database_echo else "WARNING",
                    "propagate": False,
                },
                "botocore": {"level": "WARNING"},
            },
            "root": {"handlers": handlers, "level": settings.log_level},
        }
    )


logger = logging.getLogger(ROOT_LOGGER_NAME)


def get_logger(component: str) -> logging.Logger:
    """返回 ``app.<component>`` 子 logger。"""
    return logger.getChild(component)


def set_request_id(request_id: Optional[str]) -> None:
    _request_id_ctx.set(request_id)

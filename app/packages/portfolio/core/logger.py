"""日志配置：控制台彩色输出、按天滚动的文件日志、可选 JSON 格式与请求 ID 注入。

业务代码统一通过 ``logger = logging.getLogger("app")`` 输出 ``key=value`` 风格的日志，
例如 ``fs.upload path=/Desktop/a.txt size=5``。
"""

import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Dict, Optional

from .config import Settings, get_settings

_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(request_id)s] %(message)s"
MANAGED_LOGGERS = ("app", "uvicorn", "uvicorn.error", "uvicorn.access")


def set_request_id(request_id: Optional[str]) -> None:
    _request_id_ctx.set(request_id)


class RequestIdFilter(logging.Filter):
    """把当前请求的 ID 写入每条日志记录；请求之外的日志记为 ``-``。"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id_ctx.get() or "-"
        return True


class _LocalTimeFormatter(logging.Formatter):
    """按配置时区渲染时间戳。"""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        dt = datetime.fromtimestamp(record.created, get_settings().timezone_info)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(sep=" ", timespec="milliseconds")


class ColorFormatter(_LocalTimeFormatter):
    """终端下为日志级别着色，非 TTY 输出保持纯文本。"""

    RESET = "\033[0m"
    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }

    def __init__(self, fmt: str = TEXT_FORMAT, datefmt: Optional[str] = None, use_colors: Optional[bool] = None):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = sys.stderr.isatty() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if not color:
            return message
        return message.replace(record.levelname, f"{color}{record.levelname}{self.RESET}", 1)


class JsonFormatter(_LocalTimeFormatter):
    """单行 JSON，便于日志采集端按字段检索。"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", None),
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _build_config(settings: Settings) -> Dict[str, Any]:
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": "json" if settings.log_json else "color",
            "filters": ["request_id"],
        },
    }
    if settings.log_to_file:
        settings.log_directory.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "level": settings.log_level,
            "formatter": "json" if settings.log_json else "text",
            "filename": str(settings.log_file_path),
            "when": "midnight",
            "backupCount": settings.log_backup_days,
            "encoding": "utf-8",
            "delay": True,
            "filters": ["request_id"],
        }
    handler_names = list(handlers)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {
            "color": {"()": ColorFormatter},
            "text": {"()": _LocalTimeFormatter, "fmt": TEXT_FORMAT},
            "json": {"()": JsonFormatter},
        },
        "handlers": handlers,
        "loggers": {
            name: {"handlers": handler_names, "level": settings.log_level, "propagate": False}
            for name in MANAGED_LOGGERS
        },
        "root": {"handlers": handler_names, "level": settings.log_level},
    }


def setup_logging() -> None:
    """初始化日志系统，确保所有模块使用统一的输出格式与级别。"""
    logging.config.dictConfig(_build_config(get_settings()))


logger = logging.getLogger("app")

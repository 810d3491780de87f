"""
Logging for the SchoolPay API.

Modules log through `get_logger(__name__)` and attach structured context
with `extra={"extra_data": {...}}`; request, user and order ids may be
passed as top-level extras and are promoted by the formatters.

Reconciliation and order events additionally go to the "business" logger
via `log_business_event`, which gets its own file when file logging is on.
"""

import logging
import sys
import json
import traceback
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, List, Optional
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler

from .config import settings

CONTEXT_FIELDS = ("request_id", "user_id", "order_id")

LOG_DIR = Path("logs")
MAX_LOG_BYTES = 10 * 1024 * 1024

# Libraries that are chatty at INFO
_LIBRARY_LEVELS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "asyncpg": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}

business_logger = logging.getLogger("business")


class StructuredFormatter(logging.Formatter):
    """One JSON document per record"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            entry["extra"] = extra_data

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        # UUIDs, datetimes and enums appear in extra_data
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Single-line console output, colored in development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = False):
        super().__init__()
        self.use_color = use_color

    def _level(self, levelname: str) -> str:
        if not self.use_color:
            return f"{levelname:8s}"
        return f"{self.COLORS.get(levelname, self.RESET)}{levelname:8s}{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        line = f"{timestamp} | {self._level(record.levelname)} | {record.name:28s} | {record.getMessage()}"

        request_id = getattr(record, "request_id", None)
        if request_id:
            line += f" [req={str(request_id)[:8]}]"

        order_id = getattr(record, "order_id", None)
        if order_id:
            line += f" [order={order_id}]"

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG if settings.ENVIRONMENT == "development" else logging.INFO)
    if settings.LOG_FORMAT == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter(use_color=settings.ENVIRONMENT == "development"))
    return handler


def _file_handlers() -> List[logging.Handler]:
    """app.log (INFO+) and errors.log (ERROR+, rotated daily)"""
    LOG_DIR.mkdir(exist_ok=True)

    app_handler = RotatingFileHandler(
        LOG_DIR / "app.log", maxBytes=MAX_LOG_BYTES, backupCount=5, encoding="utf-8"
    )
    app_handler.setLevel(logging.INFO)

    error_handler = TimedRotatingFileHandler(
        LOG_DIR / "errors.log", when="midnight", backupCount=30, encoding="utf-8"
    )
    error_handler.setLevel(logging.ERROR)

    for handler in (app_handler, error_handler):
        handler.setFormatter(StructuredFormatter())
    return [app_handler, error_handler]


def _attach_business_file() -> None:
    handler = RotatingFileHandler(
        LOG_DIR / "business.log", maxBytes=MAX_LOG_BYTES, backupCount=10, encoding="utf-8"
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(StructuredFormatter())
    business_logger.addHandler(handler)
    business_logger.propagate = False


def setup_logging():
    """
    Configure the root logger. Called once, before the FastAPI app exists.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(_console_handler())

    if settings.ENABLE_FILE_LOGGING:
        for handler in _file_handlers():
            root_logger.addHandler(handler)
        _attach_business_file()

    for name, level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "extra_data": {
                "environment": settings.ENVIRONMENT,
                "log_level": settings.LOG_LEVEL,
                "log_format": settings.LOG_FORMAT,
                "file_logging": settings.ENABLE_FILE_LOGGING
            }
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_business_event(
    event_type: str,
    user_id: Optional[str] = None,
    **kwargs: Any
):
    """
    Record a payment-domain event on the business logger.

    Events emitted: order_created, webhook_processed,
    webhook_order_not_found, webhook_invalid_payload.

    Usage:
        log_business_event("webhook_processed", order_id=str(order.id), status="success")
    """
    business_logger.info(
        f"Business Event: {event_type}",
        extra={
            "user_id": user_id,
            "extra_data": {"event_type": event_type, **kwargs}
        }
    )

"""
Centralized logging configuration for the task event services.

Provides a unified logging interface with:
- Structured logging with correlation IDs
- JSON output for production, coloured console output for development
- Optional file output (always JSON)
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from functools import partialmethod
from typing import Any, Dict, Optional, Union

from task_events.core.config import config
from task_events.utils.correlation_id import get_correlation_id

LOGGER_NAME = "task_events"

# Noisy at DEBUG; kept at WARNING regardless of LOG_LEVEL
QUIET_LOGGERS = ("aio_pika", "aiormq")


def configure_logging() -> None:
    """Install the console and file handlers on the root logger"""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    if config.log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(JSONFormatter() if config.log_format == "json" else ConsoleFormatter())
        root.addHandler(console_handler)

    if config.log_to_file:
        log_dir = os.path.dirname(config.log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file_path)
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def describe_error(error: Union[str, BaseException]) -> Dict[str, str]:
    if isinstance(error, BaseException):
        return {"type": type(error).__name__, "message": str(error)}
    return {"message": str(error)}


class StructuredLogger:
    """
    Adds service, environment and correlation context to every entry.

    Usage:
        logger.info("Published task.created event", metadata={"taskId": task_id})
        logger.error("Failed to publish", error=exc, metadata={...})

    The correlation id defaults to the one bound to the current request.
    """

    def __init__(self, name: str = LOGGER_NAME):
        self._logger = logging.getLogger(name)

    def log(
        self,
        level: int,
        message: str,
        correlation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        error: Optional[Union[str, BaseException]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **fields: Any,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return

        context: Dict[str, Any] = {
            "service": config.service_name,
            "environment": config.environment,
            "correlationId": correlation_id or get_correlation_id(),
        }
        if user_id:
            context["userId"] = user_id

        metadata = dict(metadata or {})
        if error:
            metadata["error"] = describe_error(error)
        if metadata:
            context["metadata"] = metadata

        context.update(fields)
        self._logger.log(level, message, extra=context)

    debug = partialmethod(log, logging.DEBUG)
    info = partialmethod(log, logging.INFO)
    warning = partialmethod(log, logging.WARNING)
    error = partialmethod(log, logging.ERROR)
    critical = partialmethod(log, logging.CRITICAL)


# LogRecord attributes that are not structured context
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update((k, v) for k, v in vars(record).items() if k not in _RECORD_ATTRS)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line output for development"""

    LEVEL_COLORS = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "35",
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, "0")
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        line = f"\033[{color}m{timestamp} {record.levelname:<8}\033[0m {record.name}: {record.getMessage()}"

        correlation_id = getattr(record, "correlationId", None)
        if correlation_id:
            line += f" [{correlation_id}]"

        metadata = getattr(record, "metadata", None)
        if metadata:
            line += f" {json.dumps(metadata, default=str)}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


configure_logging()

# Create and export the logger instance
logger = StructuredLogger()

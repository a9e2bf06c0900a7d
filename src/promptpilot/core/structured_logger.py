"""
Structured logging for PromptPilot.

Plain module loggers carry %-style messages. ``StructuredLogger`` is used
where a record is meant to be queried later (the sync dead-letter log), and
emits its message as a JSON object.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import LoggingSettings

ROOT_LOGGER_NAME = "promptpilot"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class StructuredLogger:
    """Logger whose messages are JSON objects with fixed context fields."""

    def __init__(self, name: str, level: int = logging.INFO, context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.context: Dict[str, Any] = dict(context or {})

    def bind(self, **context: Any) -> "StructuredLogger":
        """Same underlying logger, with extra fields on every record."""
        bound = StructuredLogger.__new__(StructuredLogger)
        bound.logger = self.logger
        bound.context = {**self.context, **context}
        return bound

    def log(self, level: str, message: str, **fields: Any) -> None:
        levelno = _LEVELS.get(level)
        if levelno is None:
            raise ValueError(f"Unknown log level: {level}")
        if not self.logger.isEnabledFor(levelno):
            return
        payload = {"message": message, **self.context, **fields}
        self.logger.log(levelno, json.dumps(payload, default=str))

    def debug(self, message: str, **fields: Any) -> None:
        self.log("debug", message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log("info", message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log("warning", message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self.log("error", message, **fields)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, dict):
            entry.update(extra)
        return json.dumps(entry, default=str)


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Install a single stdout handler on the package logger.

    Calling this again replaces the handler, so level/format changes apply.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(settings.level)

    for handler in list(logger.handlers):
        if getattr(handler, "_promptpilot_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if settings.format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler._promptpilot_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger


def get_logger(name: str, **context: Any) -> StructuredLogger:
    return StructuredLogger(name, context=context)

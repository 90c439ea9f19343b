# src/logging/logger.py - v3
"""Logging setup for careocr: JSON lines for deployments, text for the CLI.

Every record is stamped with the recognition context (request id, image
fingerprint prefix, pipeline stage) by ContextFilter when it is emitted,
so a log file can be grepped per request or per image.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any

from careocr.logging.context import get_context

ROOT_LOGGER = "careocr"
_QUIET_LIBRARIES = ("httpx", "httpcore", "urllib3", "google.auth")


class ContextFilter(logging.Filter):
    """Copies the current LogContext onto each record as ``careocr_context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.careocr_context = get_context().as_dict()
        return True


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    stamped = getattr(record, "careocr_context", None)
    return stamped if stamped is not None else get_context().as_dict()


class JsonFormatter(logging.Formatter):
    """One JSON object per line; non-ASCII (resident names) kept readable."""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S")
            + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = _record_context(record)
        if context:
            entry["context"] = context
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        context = _record_context(record)
        line = f"{self.formatTime(record, '%H:%M:%S')} {record.levelname:<7} {record.name}"
        if "request_id" in context:
            line += f" [{context['request_id']}]"
        if "fingerprint" in context:
            line += f" <{context['fingerprint']}>"
        if "stage" in context:
            line += f" ({context['stage']})"
        line += f" - {record.getMessage()}"
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """(Re)configure the careocr logger tree.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        log_format: "json" or "text".
        log_file: Optional file mirrored with size-based rotation.
        rotation: Size that triggers rotation, e.g. "10MB".
        retention: Rotated files kept.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = JsonFormatter() if log_format == "json" else TextFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from careocr.logging.handlers import create_rotating_handler

        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))

    context_filter = ContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root.addHandler(handler)

    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

"""Structured logging for cogmedia.

Every module logs through ``logging.getLogger(__name__)``, so all records
land under the ``cogmedia`` logger. This module decides how they look:

- JSON lines for log aggregation (``configure_logging(log_format="json")``)
- colored human-readable lines for development
- context fields bound with ``log_context`` (contextvars, so safe across
  threads and tasks)
- per-record fields passed as ``extra={"structured_data": {...}}``

Example:
    Basic usage::

        from cogmedia.observability.logging import configure_logging, log_context

        configure_logging(level="DEBUG", log_format="json")

        with log_context(request_id="abc-123"):
            store.perform_action("task", "t-1", "start")  # records carry request_id
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER_NAME = "cogmedia"

_context_fields: ContextVar[dict[str, Any] | None] = ContextVar("cogmedia_log_context", default=None)


class StructuredFormatter(logging.Formatter):
    """JSON formatter: one object per line.

    Attributes:
        include_location: Whether to include file/line/function in output.
        extra_fields: Static fields added to every record.
    """

    def __init__(
        self,
        include_location: bool = False,
        extra_fields: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.include_location = include_location
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "message": record.getMessage(),
            "logger": record.name,
        }

        if self.include_location:
            log_data["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        context = _context_fields.get()
        if context:
            log_data["context"] = dict(context)

        structured_data = getattr(record, "structured_data", None)
        if structured_data:
            log_data["data"] = dict(structured_data)

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in self.extra_fields.items():
            log_data.setdefault(key, value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """Colored single-line formatter for consoles."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and self._supports_color()

    @staticmethod
    def _supports_color() -> bool:
        if os.environ.get("NO_COLOR"):
            return False
        return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            level = f"{color}{record.levelname:8}{self.RESET}"
        else:
            level = f"{record.levelname:8}"

        base = f"{timestamp} {level} [{record.name}] {record.getMessage()}"

        context = _context_fields.get()
        if context:
            base += f" | context={json.dumps(dict(context), default=str)}"

        structured_data = getattr(record, "structured_data", None)
        if structured_data:
            base += f" | data={json.dumps(structured_data, default=str)}"

        if record.exc_info:
            base += f"\n{self.formatException(record.exc_info)}"

        return base


def configure_logging(
    level: int | str = logging.INFO,
    log_format: str = "text",
    include_location: bool = False,
    extra_fields: dict[str, Any] | None = None,
    stream: Any | None = None,
) -> logging.Logger:
    """Configure the ``cogmedia`` logger.

    Replaces any handlers previously installed on it. Libraries embedding
    cogmedia can skip this and let records propagate to their own handlers.

    Args:
        level: Minimum log level (int or name such as 'DEBUG').
        log_format: 'json' for StructuredFormatter, 'text' for
            HumanReadableFormatter.
        include_location: Include file/line/function (json only).
        extra_fields: Static fields for every record (json only).
        stream: Output stream, stderr by default.

    Returns:
        The configured ``cogmedia`` logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    root_logger.propagate = False

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)

    if log_format == "json":
        formatter: logging.Formatter = StructuredFormatter(
            include_location=include_location,
            extra_fields=extra_fields,
        )
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return root_logger


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Add fields to every record logged inside the block.

    Example:
        >>> with log_context(resource="task/t-1"):
        ...     logger.info("Processing")  # includes resource
    """
    current = dict(_context_fields.get() or {})
    current.update(kwargs)
    token = _context_fields.set(current)
    try:
        yield
    finally:
        _context_fields.reset(token)


def get_context() -> dict[str, Any]:
    """Copy of the current context fields."""
    current = _context_fields.get()
    return dict(current) if current else {}


def structured(**fields: Any) -> dict[str, Any]:
    """Build the ``extra`` argument carrying per-record fields.

    Example:
        >>> logger.info("Created resource", extra=structured(type="task", id="t-1"))
    """
    return {"structured_data": fields}

"""
Structured Logging for focusstore

- One JSON object per line (or a plain text line for terminals)
- Keyword fields on every call: logger.info("R2 request", status=200)
- Fields bound per logger (`with_extra`) or per task (`context`)
- Credential-bearing fields are masked before formatting
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Optional, TextIO


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def parse(cls, name: str) -> LogLevel:
        """Parse a level name such as "debug" or "INFO"."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown log level: {name!r}") from None


# Fields bound for the current task (see StructuredLogger.context)
_log_context: ContextVar[dict[str, Any]] = ContextVar("focusstore_log_context", default={})

# Attributes set by logging itself; anything else on a record is a field
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

# Field names whose values are never written out in full
_SECRET_FIELDS = frozenset({
    "authorization",
    "secret_access_key",
    "access_key_id",
    "r2_url",
})


def redact(secret: Optional[str], visible: int = 8) -> str:
    """Keep the first `visible` characters of a credential."""
    if not secret:
        return "(not set)"
    if len(secret) <= visible:
        return "*" * len(secret)
    return f"{secret[:visible]}..."


def _fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = dict(_log_context.get())
    for key, value in record.__dict__.items():
        if key not in _STANDARD_ATTRS:
            fields[key] = value
    for key in _SECRET_FIELDS & fields.keys():
        fields[key] = redact(str(fields[key]))
    return fields


class JsonFormatter(logging.Formatter):
    """Render a record and its fields as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(_fields(record))
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable line with fields appended as key=value."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _fields(record)
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


class StructuredLogger:
    """
    Thin wrapper over logging.Logger taking fields as keyword arguments.

    Usage:
        log = StructuredLogger("focusstore.storage").with_extra(bucket="assets")

        with StructuredLogger.context(request_id="abc"):
            log.info("Uploaded", key="a/b.txt", size=2)

    Field names must not collide with LogRecord attributes
    ("name", "message", "filename", ...).
    """

    __slots__ = ("_logger", "_bound")

    def __init__(self, name: str, bound: Optional[dict[str, Any]] = None) -> None:
        self._logger = logging.getLogger(name)
        self._bound: dict[str, Any] = bound or {}

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.ERROR, message, fields)

    def _log(self, level: LogLevel, message: str, fields: dict[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, extra={**self._bound, **fields})

    def with_extra(self, **fields: Any) -> StructuredLogger:
        """Child logger that adds `fields` to every record."""
        return StructuredLogger(self._logger.name, {**self._bound, **fields})

    @staticmethod
    def context(**fields: Any) -> _LogContext:
        """Bind fields for the current task until the block exits."""
        return _LogContext(fields)


class _LogContext:
    __slots__ = ("_fields", "_token")

    def __init__(self, fields: dict[str, Any]) -> None:
        self._fields = fields
        self._token = None

    def __enter__(self) -> _LogContext:
        self._token = _log_context.set({**_log_context.get(), **self._fields})
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Install a single stderr handler on the root logger.

    Args:
        level: Minimum level for focusstore and everything else.
        json_output: JSON lines instead of text.
        stream: Output stream (default: stderr).
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter() if json_output else TextFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Transport libraries are chatty at DEBUG
    for name in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(name).setLevel(max(level, LogLevel.WARNING))

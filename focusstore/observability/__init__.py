"""
Observability module: structured logging.
"""

from focusstore.observability.logging import (
    JsonFormatter,
    LogLevel,
    StructuredLogger,
    TextFormatter,
    redact,
    setup_logging,
)

__all__ = [
    "JsonFormatter",
    "LogLevel",
    "StructuredLogger",
    "TextFormatter",
    "redact",
    "setup_logging",
]

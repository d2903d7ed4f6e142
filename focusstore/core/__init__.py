"""
Core module: Type definitions, error hierarchy, and constants.

This module provides the foundational abstractions for focusstore:
- Result/Either monads for zero-exception control flow
- Error hierarchy with one class per failure kind
"""

from focusstore.core.types import (
    Result,
    Ok,
    Err,
    Timestamp,
)
from focusstore.core.errors import (
    ErrorCode,
    FocusStoreError,
    ConfigurationError,
    ObjectNotFoundError,
    ProtocolError,
    DecodeError,
    BatchOperationError,
    LocalFileError,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "Timestamp",
    "ErrorCode",
    "FocusStoreError",
    "ConfigurationError",
    "ObjectNotFoundError",
    "ProtocolError",
    "DecodeError",
    "BatchOperationError",
    "LocalFileError",
]

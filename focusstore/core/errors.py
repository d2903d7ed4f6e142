"""
Error Hierarchy for focusstore

Design Principles:
- Forbid exceptions for control flow (use Result types)
- Each failure kind is its own class so callers can branch on it
- Never swallow errors or use null for absence
- Carry full error context for debugging

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause for root cause analysis
- Timestamp for correlation with request logs

Usage:
    result = await store.head(key)
    match result:
        case Ok(obj):
            process(obj)
        case Err(ObjectNotFoundError() as e):
            handle_missing(e.key)
        case Err(ProtocolError(status=status)):
            handle_failure(status)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple
from uuid import uuid4

from focusstore.core.types import Timestamp


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Configuration errors
    - 2xxx: Object lookup errors
    - 3xxx: Protocol/transport errors
    - 4xxx: Decode errors
    - 5xxx: Batch and local I/O errors
    """

    # Configuration errors (1xxx)
    CONFIG_INVALID = 1001
    CONFIG_MISSING_FIELD = 1002
    CONFIG_NOT_FOUND = 1003

    # Object lookup errors (2xxx)
    OBJECT_NOT_FOUND = 2001

    # Protocol errors (3xxx)
    PROTOCOL_HTTP_STATUS = 3001
    PROTOCOL_TRANSPORT = 3002
    PROTOCOL_MALFORMED_RESPONSE = 3003

    # Decode errors (4xxx)
    DECODE_TEXT = 4001
    DECODE_JSON = 4002

    # Batch and local errors (5xxx)
    BATCH_PARTIAL_FAILURE = 5001
    LOCAL_IO_FAILED = 5002


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass
class FocusStoreError(Exception):
    """
    Base class for all focusstore errors.

    Provides common infrastructure for error handling:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp of creation
    - Cause for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: Timestamp = field(default_factory=Timestamp.now)
    cause: Optional[BaseException] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize error to dictionary for logging.

        Note: Excludes the cause traceback.
        """
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_nanos": self.timestamp.nanos,
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r})"
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================
@dataclass
class ConfigurationError(FocusStoreError):
    """
    Malformed or incomplete connection settings.

    Raised or returned at parse time. Never retried.
    """

    @classmethod
    def invalid(cls, reason: str, cause: Optional[BaseException] = None) -> ConfigurationError:
        """Connection string or settings could not be parsed."""
        return cls(
            code=ErrorCode.CONFIG_INVALID,
            message=f"Invalid R2 configuration: {reason}",
            cause=cause,
        )

    @classmethod
    def missing_fields(cls, fields: List[str], hint: str = "") -> ConfigurationError:
        """One or more required fields are empty."""
        message = f"Missing required R2 setting(s): {', '.join(fields)}"
        if hint:
            message = f"{message}. {hint}"
        return cls(
            code=ErrorCode.CONFIG_MISSING_FIELD,
            message=message,
            context={"fields": list(fields)},
        )

    @classmethod
    def not_found(cls, config_path: str) -> ConfigurationError:
        """No configuration in the environment or on disk."""
        return cls(
            code=ErrorCode.CONFIG_NOT_FOUND,
            message=(
                "No R2 config found. Set R2_URL or R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, "
                f"R2_SECRET_ACCESS_KEY, R2_BUCKET, or run 'focusstore init' "
                f"to write {config_path}"
            ),
            context={"config_path": config_path},
        )


# =============================================================================
# OBJECT ERRORS
# =============================================================================
@dataclass
class ObjectNotFoundError(FocusStoreError):
    """The remote store reports that the key does not exist."""

    bucket: str = ""
    key: str = ""

    @classmethod
    def for_key(cls, bucket: str, key: str) -> ObjectNotFoundError:
        return cls(
            code=ErrorCode.OBJECT_NOT_FOUND,
            message=f"Object '{key}' not found in bucket '{bucket}'",
            context={"bucket": bucket, "key": key},
            bucket=bucket,
            key=key,
        )


@dataclass
class ProtocolError(FocusStoreError):
    """
    Non-2xx response, network failure, or unparsable response body.

    `status` is None when no HTTP response was received.
    """

    operation: str = ""
    status: Optional[int] = None

    @classmethod
    def http_status(cls, operation: str, status: int, body: str = "") -> ProtocolError:
        """Remote answered with an unexpected status code."""
        detail = body.strip() or "no response body"
        return cls(
            code=ErrorCode.PROTOCOL_HTTP_STATUS,
            message=f"R2 {operation} failed with HTTP {status}: {detail}",
            context={"operation": operation, "status": status},
            operation=operation,
            status=status,
        )

    @classmethod
    def transport(cls, operation: str, cause: BaseException) -> ProtocolError:
        """Request never produced a response (DNS, TLS, timeout, reset)."""
        return cls(
            code=ErrorCode.PROTOCOL_TRANSPORT,
            message=f"R2 {operation} transport error: {cause!r}",
            cause=cause,
            context={"operation": operation},
            operation=operation,
        )

    @classmethod
    def malformed(
        cls,
        operation: str,
        reason: str,
        cause: Optional[BaseException] = None,
    ) -> ProtocolError:
        """Response body could not be interpreted."""
        return cls(
            code=ErrorCode.PROTOCOL_MALFORMED_RESPONSE,
            message=f"R2 {operation} returned a malformed response: {reason}",
            cause=cause,
            context={"operation": operation},
            operation=operation,
        )


@dataclass
class DecodeError(FocusStoreError):
    """A successful response body could not be decoded as text or JSON."""

    key: str = ""

    @classmethod
    def text(cls, key: str, cause: BaseException) -> DecodeError:
        return cls(
            code=ErrorCode.DECODE_TEXT,
            message=f"Object '{key}' is not valid UTF-8 text: {cause}",
            cause=cause,
            context={"key": key},
            key=key,
        )

    @classmethod
    def json(cls, key: str, cause: BaseException) -> DecodeError:
        return cls(
            code=ErrorCode.DECODE_JSON,
            message=f"Object '{key}' is not valid JSON: {cause}",
            cause=cause,
            context={"key": key},
            key=key,
        )


# =============================================================================
# FAN-OUT AND LOCAL ERRORS
# =============================================================================
@dataclass
class BatchOperationError(FocusStoreError):
    """
    One or more items of a fan-out operation failed.

    Completed items are not rolled back. `failures` lists every
    failed (key, error) pair in input order.
    """

    failures: List[Tuple[str, FocusStoreError]] = field(default_factory=list)
    completed: int = 0

    @classmethod
    def from_failures(
        cls,
        operation: str,
        failures: List[Tuple[str, FocusStoreError]],
        completed: int,
    ) -> BatchOperationError:
        first_key, first_error = failures[0]
        return cls(
            code=ErrorCode.BATCH_PARTIAL_FAILURE,
            message=(
                f"{operation}: {len(failures)} of {len(failures) + completed} "
                f"item(s) failed, first '{first_key}': {first_error.message}"
            ),
            cause=first_error,
            context={
                "operation": operation,
                "failed_keys": [key for key, _ in failures],
                "completed": completed,
            },
            failures=list(failures),
            completed=completed,
        )


@dataclass
class LocalFileError(FocusStoreError):
    """Reading a local file for upload failed."""

    @classmethod
    def unreadable(cls, path: str, cause: BaseException) -> LocalFileError:
        return cls(
            code=ErrorCode.LOCAL_IO_FAILED,
            message=f"Failed to read file {path}: {cause}",
            cause=cause,
            context={"path": path},
        )

"""
Result Types for focusstore

Store operations never raise for remote failures. They return either
Ok(value) or Err(error), and callers branch on the variant:

    result = await store.get("a.txt")
    if result.is_err():
        log(result.error)
    else:
        data = result.unwrap()

Both variants are frozen, so a Result can be shared between tasks.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    TypeVar,
    Union,
)

T = TypeVar("T")  # value
E = TypeVar("E")  # error
U = TypeVar("U")  # mapped value
F = TypeVar("F")  # mapped error


# =============================================================================
# RESULT
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """A successful outcome carrying `value`."""

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        """Return the value."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Transform the value, keeping the Ok wrapper."""
        return Ok(fn(self.value))

    def map_err(self, fn: Callable[[Any], F]) -> Ok[T]:
        return self

    def flat_map(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain another fallible step onto this value."""
        return fn(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    A failed outcome carrying `error`.

    In this package `error` is always a FocusStoreError subclass, so
    `unwrap()` re-raises it with its code and context intact.
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Raise instead of returning a value.

        Raises:
            The carried error when it is an exception, RuntimeError
            wrapping it otherwise.
        """
        if isinstance(self.error, BaseException):
            raise self.error
        raise RuntimeError(f"unwrap() called on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        return self

    def map_err(self, fn: Callable[[E], F]) -> Err[F]:
        """Transform the error, e.g. to add context."""
        return Err(fn(self.error))

    def flat_map(self, fn: Callable[[Any], Result[U, E]]) -> Err[E]:
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Union[Ok[T], Err[E]]


# =============================================================================
# TIME
# =============================================================================
@dataclass(frozen=True, slots=True, order=True)
class Timestamp:
    """Wall-clock instant in nanoseconds since the Unix epoch."""

    nanos: int

    @classmethod
    def now(cls) -> Timestamp:
        return cls(nanos=time.time_ns())

    def to_datetime(self) -> datetime:
        """Aware UTC datetime (microsecond precision)."""
        return datetime.fromtimestamp(self.nanos / 1_000_000_000, tz=timezone.utc)

    def __repr__(self) -> str:
        return f"Timestamp({self.nanos}ns)"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)

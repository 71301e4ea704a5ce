"""
Result type for domain operations that can fail without raising.

Domain functions return ``Ok(value)`` or ``Fail(error)``; the service layer
decides how a failure is surfaced (usually by raising an app.exceptions
subclass via :func:`unwrap`).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, NoReturn, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class ErrorKind(str, Enum):
    EMPTY = "empty"
    INVALID_FORMAT = "invalid_format"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    RESERVED = "reserved"
    INVALID_VALUE = "invalid_value"
    INVALID_TRANSITION = "invalid_transition"


@dataclass(frozen=True)
class DomainError:
    kind: ErrorKind
    message: str
    field: str | None = None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Fail(Generic[E]):
    error: E

    @property
    def success(self) -> bool:
        return False


Result = Union[Ok[T], Fail[E]]


def is_ok(result: Result) -> bool:
    return isinstance(result, Ok)


def map_result(result: Result[T, E], fn: Callable[[T], U]) -> Result[U, E]:
    if isinstance(result, Ok):
        return Ok(fn(result.value))
    return result


def flat_map(result: Result[T, E], fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
    if isinstance(result, Ok):
        return fn(result.value)
    return result


def unwrap(result: Result[T, E], exc_factory: Callable[[E], Exception]) -> T:
    """Return the value of an Ok, or raise ``exc_factory(error)`` for a Fail."""
    if isinstance(result, Ok):
        return result.value
    _raise(exc_factory(result.error))


def _raise(exc: Exception) -> NoReturn:
    raise exc


def fail(kind: ErrorKind, message: str, field: str | None = None) -> Fail[DomainError]:
    return Fail(DomainError(kind=kind, message=message, field=field))


def as_dict(error: DomainError) -> dict[str, Any]:
    data: dict[str, Any] = {"kind": error.kind.value}
    if error.field:
        data["field"] = error.field
    return data

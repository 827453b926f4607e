"""
core/results.py -- Typed outcomes for service operations.

Services never raise for conditions a caller can cause (bad id, missing row,
duplicate id, blocked delete). They return a Result carrying either a value or
a ServiceError with an ErrorKind. Exceptions are reserved for failures nobody
anticipated (driver errors, bugs) and surface as HTTP 500.

The HTTP layer converts an error Result into WebApiError with unwrap(); the
exception handler in api/main.py renders it as status code + plain-text body.

Layer rule: core/ is the kernel. No imports from api/, auth/, or office/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
}


@dataclass(frozen=True)
class ServiceError:
    kind: ErrorKind
    message: str

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.kind]


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a ServiceError -- never both.

    value may legitimately be None (e.g. logout has nothing to return), so
    callers test ok rather than the value.
    """

    value: T | None = None
    error: ServiceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> Result[T]:
        return cls(error=ServiceError(kind, message))


class WebApiError(Exception):
    """Raised at the controller boundary; carries the HTTP status and message verbatim."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def unwrap(result: Result[T]) -> T:
    """Return the value of a successful Result or raise WebApiError for a failed one."""
    if result.error is not None:
        raise WebApiError(result.error.status_code, result.error.message)
    return result.value  # type: ignore[return-value]

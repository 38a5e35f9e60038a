"""Error kinds of the attempt engine and the Result value returned to callers.

Internals raise ``AttemptError`` subclasses. The public lifecycle operations
catch them (plus database failures) and hand back a ``Result`` so API, UI and
job callers can branch on ``result.error.code`` instead of try/except.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError


T = TypeVar("T")


class AttemptError(Exception):
    code = "ATTEMPT_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            out["details"] = dict(self.details)
        return out


class InvalidStateError(AttemptError):
    code = "INVALID_STATE"


class NotFoundError(AttemptError):
    code = "NOT_FOUND"


class TypeMismatchError(AttemptError):
    code = "TYPE_MISMATCH"


class TimeLimitExceededError(AttemptError):
    code = "TIME_LIMIT_EXCEEDED"


class InvalidInputError(AttemptError):
    code = "VALIDATION_ERROR"


class InfrastructureError(AttemptError):
    code = "INFRASTRUCTURE_ERROR"


def require_id(value: Any, name: str) -> int:
    """Coerce a positive integer id or raise VALIDATION_ERROR."""
    try:
        out = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} is required") from None
    if out <= 0:
        raise InvalidInputError(f"{name} is required")
    return out


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[AttemptError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AttemptError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def returns_result(fn: Callable[..., T]) -> Callable[..., Result[T]]:
    """Run ``fn`` and wrap its outcome in a ``Result``.

    Only known error kinds are converted. Anything else is a bug and propagates.
    """

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Result[T]:
        try:
            return Result.success(fn(*args, **kwargs))
        except AttemptError as exc:
            return Result.failure(exc)
        except SQLAlchemyError as exc:
            err = InfrastructureError("persistence failure", reason=exc.__class__.__name__)
            err.__cause__ = exc
            return Result.failure(err)

    return wrapper

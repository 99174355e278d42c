"""Result values returned by service operations instead of raising."""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from .errors import AppError, ErrorCategory, ErrorHandlingService, ErrorSeverity

log = structlog.stdlib.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """The operation completed; `notice` is an optional informational message."""
    value: T
    notice: str | None = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """The operation did not complete. Branch on `kind`."""
    kind: ErrorCategory
    message: str
    detail: str | None = None
    severity: ErrorSeverity = ErrorSeverity.ERROR

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def from_error(cls, error: AppError, message: str | None = None) -> "Failure":
        """Build a failure from an AppError, optionally overriding the message."""
        return cls(
            kind=error.category,
            message=message or error.message,
            detail=error.technical_details,
            severity=error.severity,
        )


Result = Success[T] | Failure


def report_failure(
    error: AppError,
    errors: ErrorHandlingService | None,
    operation: str,
    component: str,
    message: str | None = None,
    context: dict[str, Any] | None = None,
) -> Failure:
    """Record `error` with the error service (when there is one) and wrap it as a Failure."""
    if errors is not None:
        errors.handle_error(error, operation, component, context)
    else:
        log.warning(
            "Operation failed",
            operation=operation,
            component=component,
            error_message=error.message,
            category=error.category.value,
        )
    return Failure.from_error(error, message)

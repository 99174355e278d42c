"""Failure kinds for the Chill Gamer client and the service that records them.

Service code raises one of the `AppError` subclasses below; the operations
that face the UI catch them and return a `Failure`. `ErrorHandlingService`
turns anything else (raw httpx errors, decoding errors, bugs) into an
`AppError`, logs it with its technical details and keeps a short history.
"""

import json
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class ErrorCategory(Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    DUPLICATE_CONSTRAINT = "duplicate_constraint"
    NOT_FOUND = "not_found"
    STALE_REFERENCE = "stale_reference"
    AUTHENTICATION = "authentication"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorContext:
    """Where an unclassified error was caught."""
    operation: str
    component: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UserFriendlyError:
    """What the UI shows: a message plus a few things the user can try."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None
    recoverable: bool = True


class AppError(Exception):
    """Base class for every failure the client reports to the user."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
        recoverable: bool = True,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = list(suggested_actions or [])
        self.technical_details = technical_details
        self.recoverable = recoverable
        self.context = context

    def to_user_friendly(self) -> UserFriendlyError:
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
            recoverable=self.recoverable,
        )


def _describe(
    original_error: Exception | None = None,
    url: str | None = None,
    status_code: int | None = None,
) -> str | None:
    parts = []
    if status_code:
        parts.append(f"Status: {status_code}")
    if url:
        parts.append(f"URL: {url}")
    if original_error:
        parts.append(f"{type(original_error).__name__}: {original_error}")
    return "\n".join(parts) or None


def _network_suggestions(status_code: int | None) -> list[str]:
    if status_code == 404:
        return ["The requested item may no longer exist", "Refresh the list and try again"]
    if status_code is not None and status_code >= 500:
        return ["The server is having trouble right now", "Try again later"]
    return [
        "Check your internet connection",
        "Make sure the Chill Gamer API is running",
        "Try again in a few moments",
    ]


class NetworkError(AppError):
    """A request failed, timed out, returned non-2xx or an unreadable body."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.ERROR,
            suggested_actions=_network_suggestions(status_code),
            technical_details=_describe(original_error, url, status_code),
        )
        self.original_error = original_error
        self.url = url
        self.status_code = status_code


class DuplicateConstraintError(AppError):
    """The store rejected an add because the (user, game title) pair exists."""

    def __init__(self, message: str, game_title: str | None = None, url: str | None = None) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.DUPLICATE_CONSTRAINT,
            severity=ErrorSeverity.INFO,
            suggested_actions=["Nothing to do, the game is already in your watchlist"],
            technical_details=_describe(url=url, status_code=409),
        )
        self.game_title = game_title
        self.url = url


class NotFoundError(AppError):
    """An id-based lookup found nothing."""

    def __init__(self, message: str, entity: str | None = None, entity_id: str | None = None) -> None:
        details = f"{entity or 'Entity'}: {entity_id or '?'}" if (entity or entity_id) else None
        super().__init__(
            message=message,
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.WARNING,
            suggested_actions=["Go back to the list and pick another item"],
            technical_details=details,
        )
        self.entity = entity
        self.entity_id = entity_id


class StaleReferenceError(AppError):
    """A mutation targeted an id the server no longer has."""

    def __init__(self, message: str, entity_id: str | None = None, url: str | None = None) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.STALE_REFERENCE,
            severity=ErrorSeverity.ERROR,
            suggested_actions=["Refresh to load the current state", "Try again"],
            technical_details=_describe(url=url, status_code=404),
        )
        self.entity_id = entity_id
        self.url = url


class AuthenticationRequiredError(AppError):
    """The operation needs a signed-in user."""

    def __init__(self, message: str = "Please login to continue", operation: str | None = None) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.WARNING,
            suggested_actions=["Sign in and try again"],
            technical_details=f"Operation: {operation}" if operation else None,
        )
        self.operation = operation


class ValidationError(AppError):
    """User input was rejected before anything was sent."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        constraints: list[str] | None = None,
    ) -> None:
        details = [f"Field: {field}"] if field else []
        if value is not None:
            details.append(f"Value: {str(value)[:100]}")
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            suggested_actions=["Check the highlighted field"] + [f"Ensure: {c}" for c in constraints or []],
            technical_details="\n".join(details) or None,
        )
        self.field = field
        self.value = value
        self.constraints = list(constraints or [])


_HTTP_STATUS_MESSAGES = {
    400: "The request was invalid. Please check your input.",
    401: "Authentication required. Please sign in.",
    403: "You don't have permission to do that.",
    404: "The requested item was not found.",
    408: "The request timed out. Please try again.",
    409: "That item already exists.",
    429: "Too many requests. Please wait before trying again.",
    500: "The server encountered an error. Please try again later.",
    502: "The server is temporarily unavailable. Please try again later.",
    503: "The service is temporarily unavailable. Please try again later.",
    504: "The server took too long to respond. Please try again.",
}


class ErrorHandlingService:
    """Classifies errors, logs them and keeps the most recent ones.

    Presentation code hands any exception it catches to `handle_error` and
    shows the returned `UserFriendlyError`.
    """

    def __init__(self, max_history_size: int = 100) -> None:
        self._history: deque[tuple[float, AppError]] = deque(maxlen=max_history_size)
        log.info("Error handling service initialized", max_history_size=max_history_size)

    def handle_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
    ) -> UserFriendlyError:
        """Classify, log and record `error`.

        Args:
            error: The exception that was caught
            operation: What was being attempted, e.g. "toggle"
            component: The class or screen that caught it
            context: Extra key/value pairs for the log entry

        Returns:
            The user-facing form of the error
        """
        app_error = self.classify(error, operation, component, context)
        self._log_error(app_error, operation, component, context)
        self._history.append((time.time(), app_error))
        return app_error.to_user_friendly()

    def classify(
        self,
        error: Exception,
        operation: str = "",
        component: str = "",
        context: dict[str, Any] | None = None,
    ) -> AppError:
        """Map any exception onto the AppError hierarchy; AppErrors pass through."""
        if isinstance(error, AppError):
            return error

        context = context or {}
        url = context.get("url")

        match error:
            case httpx.TimeoutException():
                return NetworkError(
                    "The request timed out. The server may be slow or unavailable.",
                    original_error=error,
                    url=url,
                )
            case httpx.HTTPStatusError():
                return NetworkError(
                    self.http_error_message(error.response.status_code),
                    original_error=error,
                    url=str(error.request.url),
                    status_code=error.response.status_code,
                )
            case httpx.RequestError():
                return NetworkError(
                    "Unable to reach the server. Please check your connection.",
                    original_error=error,
                    url=url,
                )
            case json.JSONDecodeError():
                return NetworkError(
                    "The server sent a response that could not be read.",
                    original_error=error,
                    url=url,
                )
            case ValueError():
                return ValidationError(str(error), field=context.get("field"), value=context.get("value"))

        return AppError(
            "An unexpected error occurred. Please try again.",
            technical_details=f"{type(error).__name__}: {error}",
            context=ErrorContext(operation=operation, component=component, details=context),
        )

    @staticmethod
    def http_error_message(status_code: int) -> str:
        return _HTTP_STATUS_MESSAGES.get(status_code, f"HTTP error {status_code} occurred.")

    def _log_error(
        self,
        error: AppError,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> None:
        if error.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            emit = log.error
        elif error.severity == ErrorSeverity.WARNING:
            emit = log.warning
        else:
            emit = log.info

        emit(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            operation=operation,
            component=component,
            technical_details=error.technical_details,
            context=context,
        )

    def get_recent_errors(self, count: int = 10) -> list[AppError]:
        """Up to `count` most recent errors, oldest first."""
        return [error for _, error in list(self._history)[-count:]]

    def get_error_count_by_category(self) -> dict[ErrorCategory, int]:
        counts: dict[ErrorCategory, int] = {}
        for _, error in self._history:
            counts[error.category] = counts.get(error.category, 0) + 1
        return counts

    def create_user_message(self, error: UserFriendlyError, include_suggestions: bool = True) -> str:
        """The error message, followed by up to three suggested actions."""
        lines = [error.message]
        if include_suggestions and error.suggested_actions:
            lines.append("\nSuggested actions:")
            lines.extend(f"  • {action}" for action in error.suggested_actions[:3])
        return "\n".join(lines)

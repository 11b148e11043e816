"""Error handling for the stream companion service.

This module provides:
- Custom exception classes for store, platform API, and configuration failures
- Conversion of arbitrary exceptions into classified application errors
- Centralized logging and bookkeeping of handled errors

Errors handled here are never re-raised: callers use them to log a failure
and fall back to a default for the affected piece of state.
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    STORE = "store"
    PLATFORM_API = "platform_api"
    NOTIFICATION = "notification"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorContext:
    """Context information for an error."""
    operation: str
    component: str
    details: dict[str, Any]


class AppError(Exception):
    """Base exception class for application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        technical_details: str | None = None,
        recoverable: bool = True,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.technical_details = technical_details
        self.recoverable = recoverable
        self.context = context


class StoreError(AppError):
    """Exception for a failed repository read or write."""

    def __init__(
        self,
        message: str,
        store: str | None = None,
        key: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        technical_details = None
        if store:
            technical_details = f"Store: {store}"
        if key:
            technical_details = (technical_details or "") + f"\nKey: {key}"
        if original_error:
            technical_details = (technical_details or "") + f"\nError: {type(original_error).__name__}: {str(original_error)}"

        super().__init__(
            message=message,
            category=ErrorCategory.STORE,
            severity=ErrorSeverity.ERROR,
            technical_details=technical_details,
            recoverable=True,
        )
        self.store = store
        self.key = key
        self.original_error = original_error


class ChannelUpdateError(AppError):
    """Exception for a failed call to the streaming platform."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        technical_details = None
        if original_error:
            technical_details = f"{type(original_error).__name__}: {str(original_error)}"
        if url:
            technical_details = f"URL: {url}" + (f"\n{technical_details}" if technical_details else "")
        if status_code:
            technical_details = f"Status: {status_code}" + (f"\n{technical_details}" if technical_details else "")

        # Auth failures need the broadcaster to reconnect; retrying won't help
        recoverable = status_code not in (401, 403)

        super().__init__(
            message=message,
            category=ErrorCategory.PLATFORM_API,
            severity=ErrorSeverity.WARNING if recoverable else ErrorSeverity.ERROR,
            technical_details=technical_details,
            recoverable=recoverable,
        )
        self.original_error = original_error
        self.url = url
        self.status_code = status_code


class ValidationError(AppError):
    """Exception for validation-related errors."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        technical_details = None
        if field:
            technical_details = f"Field: {field}"
        if value is not None:
            value_str = str(value)[:100]  # Truncate long values
            technical_details = (technical_details or "") + f"\nValue: {value_str}"

        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            technical_details=technical_details,
            recoverable=True,
        )
        self.field = field
        self.value = value


class ConfigurationError(AppError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        current_value: Any = None,
        expected: str | None = None,
    ) -> None:
        technical_details = None
        if setting:
            technical_details = f"Setting: {setting}"
        if current_value is not None:
            technical_details = (technical_details or "") + f"\nCurrent: {current_value}"
        if expected:
            technical_details = (technical_details or "") + f"\nExpected: {expected}"

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.ERROR,
            technical_details=technical_details,
            recoverable=True,
        )
        self.setting = setting
        self.current_value = current_value
        self.expected = expected


class ErrorHandlingService:
    """Centralized error handling service.

    This service provides:
    - Error classification into AppError subclasses
    - Error logging with technical details
    - A bounded history of handled errors for diagnostics
    """

    def __init__(self, max_history_size: int = 100) -> None:
        """Initialize the error handling service.

        Args:
            max_history_size: Number of handled errors to remember
        """
        self._error_history: list[tuple[float, AppError]] = []
        self._max_history_size = max_history_size
        log.info("Error handling service initialized")

    def handle_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
    ) -> AppError:
        """Classify, log and record an error.

        Args:
            error: The exception that occurred
            operation: The operation being performed
            component: The component where the error occurred
            context: Additional context information

        Returns:
            The classified application error
        """
        app_error = self._convert_to_app_error(error, operation, component, context)

        self._log_error(app_error, operation, component, context)

        self._error_history.append((time.time(), app_error))
        if len(self._error_history) > self._max_history_size:
            self._error_history.pop(0)

        return app_error

    def _convert_to_app_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> AppError:
        """Convert a standard exception to an AppError."""
        if isinstance(error, AppError):
            return error

        if isinstance(error, httpx.HTTPStatusError):
            return ChannelUpdateError(
                message=f"The streaming platform rejected the request (HTTP {error.response.status_code}).",
                original_error=error,
                url=str(error.request.url) if error.request else None,
                status_code=error.response.status_code,
            )
        elif isinstance(error, (httpx.RequestError, httpx.TimeoutException)):
            return ChannelUpdateError(
                message="Unable to reach the streaming platform.",
                original_error=error,
                url=context.get("url") if context else None,
            )
        elif isinstance(error, (OSError, json.JSONDecodeError)):
            return StoreError(
                message=f"A storage error occurred during {operation}.",
                store=context.get("store") if context else None,
                key=context.get("key") if context else None,
                original_error=error,
            )
        elif isinstance(error, (ValueError, TypeError)):
            return ValidationError(
                message=f"Invalid data: {str(error)}",
                field=context.get("field") if context else None,
                value=context.get("value") if context else None,
            )

        return AppError(
            message="An unexpected error occurred.",
            category=ErrorCategory.UNEXPECTED,
            severity=ErrorSeverity.ERROR,
            technical_details=f"{type(error).__name__}: {str(error)}",
            recoverable=True,
            context=ErrorContext(
                operation=operation,
                component=component,
                details=context or {},
            ),
        )

    def _log_error(
        self,
        error: AppError,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> None:
        """Log error with full technical details."""
        log_method = log.warning if error.severity == ErrorSeverity.WARNING else log.error

        log_method(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            operation=operation,
            component=component,
            technical_details=error.technical_details,
            recoverable=error.recoverable,
            context=context,
        )

    def get_recent_errors(self, count: int = 10) -> list[AppError]:
        """Get recent errors from history.

        Args:
            count: Number of recent errors to return

        Returns:
            List of recent AppError instances
        """
        recent = self._error_history[-count:] if self._error_history else []
        return [error for _, error in recent]

    def get_error_count_by_category(self) -> dict[ErrorCategory, int]:
        """Get count of errors by category."""
        counts: dict[ErrorCategory, int] = {}
        for _, error in self._error_history:
            counts[error.category] = counts.get(error.category, 0) + 1
        return counts

    def clear_history(self) -> None:
        """Forget all recorded errors."""
        self._error_history.clear()


# Global error handling service instance
_error_service: ErrorHandlingService | None = None


def get_error_service() -> ErrorHandlingService:
    """Get the global error handling service instance."""
    global _error_service
    if _error_service is None:
        _error_service = ErrorHandlingService()
    return _error_service


def handle_error(
    error: Exception,
    operation: str,
    component: str,
    context: dict[str, Any] | None = None,
) -> AppError:
    """Convenience function to handle errors using the global service."""
    return get_error_service().handle_error(error, operation, component, context)

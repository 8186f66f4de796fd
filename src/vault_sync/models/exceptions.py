"""
Custom exception classes for the vault sync system.

Provides specific exception types for the failure scenarios of change
tracking, marker signalling and configuration so callers can handle them
without inspecting raw OS errors.
"""

from typing import Any


class BaseError(Exception):
    """
    Base exception class for all vault sync errors.

    All custom exceptions in the system should inherit from this base class
    to enable consistent error handling and logging.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize the error.

        Args:
            message: Human-readable error description
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context information
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause

    def __str__(self) -> str:
        """String representation including error code if present."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"context={self.context})"
        )


class ConfigurationError(BaseError):
    """Raised when there are configuration or settings issues."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        expected_type: str | None = None,
        actual_value: Any | None = None,
    ):
        context = {}
        if config_key:
            context["config_key"] = config_key
        if expected_type:
            context["expected_type"] = expected_type
        if actual_value is not None:
            context["actual_value"] = str(actual_value)

        super().__init__(message, error_code="CONFIG_ERROR", context=context)


class MonitoringError(BaseError):
    """Raised when file monitoring operations fail."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        operation: str | None = None,
        underlying_error: Exception | None = None,
    ):
        context = {}
        if path:
            context["path"] = path
        if operation:
            context["operation"] = operation

        super().__init__(
            message,
            error_code="MONITORING_ERROR",
            context=context,
            cause=underlying_error,
        )


class MarkerError(BaseError):
    """Raised when a marker record cannot be written, read or removed."""

    def __init__(
        self,
        message: str,
        marker_name: str | None = None,
        operation: str | None = None,
        underlying_error: Exception | None = None,
    ):
        context = {}
        if marker_name:
            context["marker_name"] = marker_name
        if operation:
            context["operation"] = operation

        super().__init__(
            message,
            error_code="MARKER_ERROR",
            context=context,
            cause=underlying_error,
        )


class NoticeParseError(BaseError):
    """Raised when a remote-change marker does not hold a valid notice."""

    def __init__(
        self,
        message: str,
        marker_name: str | None = None,
        underlying_error: Exception | None = None,
    ):
        context = {}
        if marker_name:
            context["marker_name"] = marker_name

        super().__init__(message, error_code="NOTICE_PARSE_ERROR", context=context, cause=underlying_error)


class SyncError(BaseError):
    """Raised when the sync coordinator cannot perform an operation."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        underlying_error: Exception | None = None,
    ):
        context = {}
        if operation:
            context["operation"] = operation

        super().__init__(message, error_code="SYNC_ERROR", context=context, cause=underlying_error)


# Convenience functions for common error scenarios
def raise_config_error(
    message: str,
    config_key: str,
    expected_type: str | None = None,
    actual_value: Any | None = None,
) -> None:
    """Raise a configuration error with context."""
    raise ConfigurationError(
        message=message,
        config_key=config_key,
        expected_type=expected_type,
        actual_value=actual_value,
    )

"""Error handling helpers shared by the tool layer.

Tools never raise to the protocol layer: failures are logged with context
and turned into an ``OperationStatus`` carrying the error code.
"""

from __future__ import annotations

import functools
import logging
from typing import Any

from .exceptions import ContentMCPError
from .exceptions import ValidationError
from .logger_config import ErrorCategory
from .logger_config import log_structured_error
from .models import OperationStatus

logger = logging.getLogger(__name__)


class OperationError(ContentMCPError):
    """An unexpected failure wrapped with the name of the operation it interrupted."""

    def __init__(self, operation: str, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Operation '{operation}' failed: {reason}",
            error_code="OPERATION_FAILED",
            details={"operation": operation, **(details or {})},
            user_message=f"The {operation} operation failed unexpectedly.",
        )
        self.operation = operation


def create_error_response(error: Exception, operation: str) -> OperationStatus:
    """Build the failure status returned to a tool caller."""
    if isinstance(error, ContentMCPError):
        return OperationStatus(
            success=False,
            message=error.user_message,
            details={"error_code": error.error_code, "operation": operation, **error.details},
        )
    return OperationStatus(
        success=False,
        message=f"An unexpected error occurred during {operation}.",
        details={
            "error_code": "UNEXPECTED_ERROR",
            "operation": operation,
            "error_type": type(error).__name__,
            "error": str(error),
        },
    )


def handle_mcp_tool_error(tool_name: str, error: Exception, context: dict[str, Any] | None = None) -> OperationStatus:
    """Log a tool failure with its context and convert it into a response."""
    expected = isinstance(error, ContentMCPError)
    logger.error(
        f"Tool {tool_name} failed: {error}",
        exc_info=not expected,
        extra={"tool": tool_name, "context": context or {}},
    )
    log_structured_error(
        category=ErrorCategory.WARNING if expected else ErrorCategory.ERROR,
        message=f"Tool {tool_name} failed",
        exception=error,
        context={"tool_context": context or {}},
        operation=tool_name,
    )
    return create_error_response(error, tool_name)


def safe_operation(
    operation: str,
    default_return: Any = None,
    raise_on_error: bool = False,
    log_errors: bool = True,
):
    """Decorator returning ``default_return`` on failure, or re-raising when asked.

    Unexpected exceptions are wrapped in ``OperationError`` when re-raised;
    ``ContentMCPError`` subclasses propagate unchanged.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ContentMCPError as e:
                if log_errors:
                    logger.error(f"{operation} failed: {e.message}", extra={"error_code": e.error_code})
                if raise_on_error:
                    raise
                return default_return
            except Exception as e:
                if log_errors:
                    logger.error(f"{operation} failed unexpectedly: {e}", exc_info=True)
                if raise_on_error:
                    raise OperationError(operation, str(e)) from e
                return default_return

        return wrapper

    return decorator


def log_operation_start(operation: str, **context: Any) -> None:
    logger.info(f"Starting {operation}", extra={"context": context})


def log_operation_success(operation: str, result: Any = None, **context: Any) -> None:
    extra: dict[str, Any] = {"context": context}
    if result is not None:
        if isinstance(result, (list, dict)):
            summary = f"{type(result).__name__} with {len(result)} items"
        elif isinstance(result, str):
            summary = result[:100]
        else:
            summary = type(result).__name__
        extra["result_summary"] = summary
    logger.info(f"Completed {operation} successfully", extra=extra)


def validate_field_type(data: dict[str, Any], field: str, expected_type: type, required: bool = True) -> None:
    value = data.get(field)
    if value is None:
        if required:
            raise ValidationError(f"Field '{field}' is required", field=field, expected=expected_type.__name__)
        return
    if not isinstance(value, expected_type):
        error = ValidationError(
            f"Field '{field}' must be {expected_type.__name__}",
            field=field,
            expected=expected_type.__name__,
            actual=type(value).__name__,
        )
        error.details["expected_type"] = expected_type.__name__
        error.details["actual_type"] = type(value).__name__
        raise error


class ErrorContext:
    """Context manager logging start, success and failure of a block.

    Errors propagate unless ``raise_on_error`` is False; ``ctx.result`` feeds
    the success log.
    """

    def __init__(
        self,
        operation: str,
        log_start: bool = True,
        log_success: bool = True,
        raise_on_error: bool = True,
        **context: Any,
    ):
        self.operation = operation
        self.log_start = log_start
        self.log_success = log_success
        self.raise_on_error = raise_on_error
        self.context = context
        self.result: Any = None
        self.error: Exception | None = None

    def __enter__(self) -> ErrorContext:
        if self.log_start:
            log_operation_start(self.operation, **self.context)
        return self

    def __exit__(self, exc_type, exc_value, tb) -> bool:
        if exc_value is None:
            if self.log_success:
                log_operation_success(self.operation, self.result, **self.context)
            return False

        if not isinstance(exc_value, Exception):
            return False
        self.error = exc_value
        if isinstance(exc_value, ContentMCPError):
            logger.error(
                f"{self.operation} failed: {exc_value.message}",
                extra={"error_code": exc_value.error_code, "context": self.context},
            )
        else:
            logger.error(f"{self.operation} failed unexpectedly: {exc_value}", exc_info=True)
        return not self.raise_on_error

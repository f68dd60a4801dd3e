"""Custom exception hierarchy for the Content MCP system.

Every error raised by the path, schema and mutation core derives from
``ContentMCPError`` so the tool layer can turn it into a structured
response. Each exception carries a machine readable ``error_code``, a
``details`` mapping and a ``user_message`` suitable for showing to an agent.
"""

from __future__ import annotations

from typing import Any


class ContentMCPError(Exception):
    """Base class for all Content MCP errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.user_message = user_message or message

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to a serializable dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
        }


class PathSyntaxError(ContentMCPError):
    """A field path string could not be parsed."""

    def __init__(self, message: str, path: str, position: int | None = None):
        details: dict[str, Any] = {"path": path}
        if position is not None:
            details["position"] = position
        super().__init__(
            message=f"{message}: {path!r}",
            error_code="PATH_SYNTAX_ERROR",
            details=details,
            user_message=f"Invalid path {path!r}: {message}",
        )
        self.path = path
        self.position = position


class SchemaConfigError(ContentMCPError):
    """The schema manifest set is unusable (duplicates, dangling names, bad JSON)."""

    def __init__(self, message: str, type_name: str | None = None, details: dict[str, Any] | None = None):
        merged = dict(details or {})
        if type_name is not None:
            merged["type_name"] = type_name
        super().__init__(
            message=message,
            error_code="SCHEMA_CONFIG_ERROR",
            details=merged,
            user_message=f"Schema configuration error: {message}",
        )
        self.type_name = type_name


class SchemaNotFoundError(SchemaConfigError):
    """No deployed schema document exists under the requested id."""

    def __init__(self, schema_id: str):
        super().__init__(
            f"Schema not found for id: {schema_id}. Use list_schema_ids to find available schemas.",
            details={"schema_id": schema_id},
        )
        self.schema_id = schema_id


class ValidationError(ContentMCPError):
    """A value does not match the shape required for it.

    ``field`` names the offending field path (already serialized), ``expected``
    and ``actual`` describe the mismatch when known.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        expected: str | None = None,
        actual: str | None = None,
    ):
        details: dict[str, Any] = {}
        if field is not None:
            details["field"] = field
        if value is not None:
            details["invalid_value"] = value
        if expected is not None:
            details["expected"] = expected
        if actual is not None:
            details["actual"] = actual
        text = f"{field}: {message}" if field else message
        super().__init__(
            message=text,
            error_code="VALIDATION_ERROR",
            details=details,
            user_message=f"Validation failed: {text}",
        )
        self.field = field
        self.expected = expected
        self.actual = actual


class ConcurrencyConflict(ContentMCPError):
    """A revision-guarded patch found the document at a different revision."""

    def __init__(
        self,
        document_id: str,
        expected_revision: str | None = None,
        current_revision: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        merged = {"document_id": document_id, **(details or {})}
        if expected_revision is not None:
            merged["expected_revision"] = expected_revision
        if current_revision is not None:
            merged["current_revision"] = current_revision
        super().__init__(
            message=(
                f"Document '{document_id}' has unexpected revision "
                f"(expected {expected_revision!r})"
            ),
            error_code="CONCURRENCY_CONFLICT",
            details=merged,
            user_message=(
                f"Document '{document_id}' was modified concurrently. "
                "Re-read the document and retry with its current revision."
            ),
        )
        self.document_id = document_id
        self.expected_revision = expected_revision
        self.current_revision = current_revision


class StoreError(ContentMCPError):
    """The content store rejected a request or could not be reached."""

    def __init__(
        self,
        operation: str,
        failure_reason: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        merged = {"operation": operation, "failure_reason": failure_reason, **(details or {})}
        if status_code is not None:
            merged["status_code"] = status_code
        super().__init__(
            message=f"Store operation '{operation}' failed: {failure_reason}",
            error_code="STORE_ERROR",
            details=merged,
            user_message=f"Content store error during {operation}: {failure_reason}",
        )
        self.operation = operation
        self.failure_reason = failure_reason
        self.status_code = status_code


class DocumentNotFoundError(ContentMCPError):
    """Raised when a document does not exist in the dataset."""

    def __init__(self, document_id: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Document not found: {document_id}",
            error_code="DOCUMENT_NOT_FOUND",
            details={"document_id": document_id, **(details or {})},
            user_message=f"The document '{document_id}' does not exist.",
        )
        self.document_id = document_id


class PartialDocumentRetrievalWarning(UserWarning):
    """Some documents could not be fetched after a successful commit.

    Never raised: it is logged and reported through the transaction result.
    """

    def __init__(self, document_id: str, reason: str):
        super().__init__(f"Could not retrieve document '{document_id}' after commit: {reason}")
        self.document_id = document_id
        self.reason = reason

"""Pydantic models returned by the Content MCP tools.

Core inputs (manifests, patch operations, transaction options) live next to
the code that consumes them; this module holds the response shapes.
"""

from typing import Any

from pydantic import BaseModel

# === Core Operation Models ===


class OperationStatus(BaseModel):
    """Generic status for operations."""

    success: bool
    message: str
    details: dict[str, Any] | None = None  # e.g. error_code, operation, ids
    warnings: list[str] = []


# === Schema Models ===


class TypeSummary(BaseModel):
    """One line of the schema overview."""

    name: str
    type: str
    title: str | None = None
    fields_count: int
    description: str


class SchemaOverview(BaseModel):
    """Summary of a manifest set, optionally with full type details."""

    schema_id: str | None = None
    total_types: int
    types: list[TypeSummary]
    details: list[dict[str, Any]] | None = None


class ValidationReport(BaseModel):
    """Outcome of validating a document against its declared type."""

    valid: bool
    type_name: str | None = None
    field: str | None = None
    message: str | None = None
    expected: str | None = None
    actual: str | None = None
    normalized: dict[str, Any] | None = None


# === Path Models ===


class ParsedPath(BaseModel):
    """A path string in canonical form with its segments."""

    path: str
    canonical: str
    segments: list[dict[str, Any]]
    read_only: bool


# === Query and Document Models ===


class QueryResult(BaseModel):
    """One page of query results."""

    query: str
    params: dict[str, Any] = {}
    page: int
    page_size: int
    count: int
    has_more: bool
    results: list[Any]


class DocumentResult(BaseModel):
    """A single fetched document and the id it was found under."""

    requested_id: str
    resolved_id: str
    is_draft: bool
    document: dict[str, Any]

"""Unit tests for the custom exception hierarchy."""

from __future__ import annotations

import pytest

from content_mcp.exceptions import ConcurrencyConflict
from content_mcp.exceptions import ContentMCPError
from content_mcp.exceptions import DocumentNotFoundError
from content_mcp.exceptions import PartialDocumentRetrievalWarning
from content_mcp.exceptions import PathSyntaxError
from content_mcp.exceptions import SchemaConfigError
from content_mcp.exceptions import SchemaNotFoundError
from content_mcp.exceptions import StoreError
from content_mcp.exceptions import ValidationError


class TestContentMCPError:
    """Tests for the base ContentMCPError class."""

    def test_basic_initialization(self):
        error = ContentMCPError("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.error_code == "UNKNOWN_ERROR"
        assert error.details == {}
        assert error.user_message == "Something went wrong"

    def test_to_dict(self):
        error = ContentMCPError(
            message="Test error",
            error_code="TEST_ERROR",
            details={"info": "data"},
            user_message="Test message",
        )

        assert error.to_dict() == {
            "error_type": "ContentMCPError",
            "error_code": "TEST_ERROR",
            "message": "Test error",
            "user_message": "Test message",
            "details": {"info": "data"},
        }


class TestPathSyntaxError:
    """Tests for PathSyntaxError."""

    def test_position_recorded(self):
        error = PathSyntaxError("unclosed bracket", "tags[0", position=4)

        assert error.error_code == "PATH_SYNTAX_ERROR"
        assert error.details == {"path": "tags[0", "position": 4}
        assert "tags[0" in error.user_message

    def test_position_optional(self):
        assert "position" not in PathSyntaxError("empty path", "").details


class TestSchemaErrors:
    """Tests for SchemaConfigError and SchemaNotFoundError."""

    def test_type_name_in_details(self):
        error = SchemaConfigError("duplicate type", type_name="post", details={"count": 2})

        assert error.error_code == "SCHEMA_CONFIG_ERROR"
        assert error.details == {"count": 2, "type_name": "post"}

    def test_not_found_is_config_error(self):
        error = SchemaNotFoundError("sanity.workspace.schema.default")

        assert isinstance(error, SchemaConfigError)
        assert error.schema_id == "sanity.workspace.schema.default"
        assert "list_schema_ids" in error.message


class TestValidationError:
    """Tests for ValidationError."""

    def test_field_prefixes_message(self):
        error = ValidationError("expected string", field="title", value=5, expected="string", actual="number")

        assert error.message == "title: expected string"
        assert error.details == {"field": "title", "invalid_value": 5, "expected": "string", "actual": "number"}
        assert error.user_message.startswith("Validation failed")

    def test_without_field(self):
        error = ValidationError("bad input")
        assert error.message == "bad input"
        assert error.details == {}


class TestStoreErrors:
    """Tests for store related errors."""

    def test_concurrency_conflict(self):
        error = ConcurrencyConflict("article-1", expected_revision="r1", current_revision="r2")

        assert error.error_code == "CONCURRENCY_CONFLICT"
        assert error.details == {"document_id": "article-1", "expected_revision": "r1", "current_revision": "r2"}
        assert not isinstance(error, StoreError)

    def test_store_error(self):
        error = StoreError("commit_transaction", "timeout", status_code=504, details={"attempt": 1})

        assert error.error_code == "STORE_ERROR"
        assert error.details["status_code"] == 504
        assert error.details["attempt"] == 1
        assert "timeout" in error.message

    def test_document_not_found(self):
        error = DocumentNotFoundError("missing")
        assert error.error_code == "DOCUMENT_NOT_FOUND"
        assert error.details["document_id"] == "missing"


class TestPartialDocumentRetrievalWarning:
    """Tests for the post-commit retrieval warning."""

    def test_message(self):
        warning = PartialDocumentRetrievalWarning("a", "timeout")

        assert isinstance(warning, UserWarning)
        assert str(warning) == "Could not retrieve document 'a' after commit: timeout"


@pytest.mark.parametrize(
    "error",
    [
        PathSyntaxError("x", "p"),
        SchemaConfigError("x"),
        ValidationError("x"),
        ConcurrencyConflict("a"),
        StoreError("op", "x"),
        DocumentNotFoundError("a"),
    ],
)
def test_all_errors_share_base(error):
    assert isinstance(error, ContentMCPError)
    assert error.to_dict()["error_type"] == type(error).__name__

"""Schema Tools.

This module contains MCP tools for inspecting the deployed content schema:
- list_schema_ids: List deployed schema documents
- get_schema_overview: Summarize the types of a schema
- get_type_schema: Full definition of one type
- validate_document: Check a document against its declared type
"""

from typing import Any

from mcp.server import FastMCP

from ..context import ServerContext
from ..error_handler import handle_mcp_tool_error
from ..exceptions import ValidationError
from ..logger_config import log_mcp_call
from ..models import OperationStatus
from ..models import SchemaOverview
from ..models import ValidationReport
from ..schema.overview import generate_schema_overview
from ..schema.overview import get_type_manifest
from ..schema.overview import type_details
from ..schema.source import list_schema_ids as fetch_schema_ids


def register_schema_tools(mcp_server: FastMCP, context: ServerContext) -> None:
    """Register all schema inspection tools with the MCP server."""

    @mcp_server.tool()
    @log_mcp_call
    async def list_schema_ids() -> OperationStatus:
        """List the ids of every schema deployed to the dataset.

        Returns:
            OperationStatus: ``details.schema_ids`` holds the ids. Fails when no
            schema has been deployed yet.
        """
        try:
            schema_ids = await fetch_schema_ids(context.store)
        except Exception as e:
            return handle_mcp_tool_error("list_schema_ids", e)
        if not schema_ids:
            return OperationStatus(
                success=False,
                message="No schemas are deployed to this dataset. Deploy a schema first.",
                details={"schema_ids": []},
            )
        return OperationStatus(
            success=True,
            message=f"Found {len(schema_ids)} schema IDs.",
            details={"schema_ids": schema_ids},
        )

    @mcp_server.tool()
    @log_mcp_call
    async def get_schema_overview(schema_id: str | None = None, lite: bool = True) -> SchemaOverview | OperationStatus:
        """Summarize the types defined in a deployed schema.

        Internal types (``sanity.*`` and ``assist.*``) are left out.

        Parameters:
            schema_id (str, optional): Schema document id. Defaults to the
                configured default schema.
            lite (bool): When False, include every type's fields, array
                members and reference targets.

        Returns:
            SchemaOverview: ``total_types`` and one summary per type
            (name, kind, title, field count, one-line description), plus
            ``details`` when ``lite`` is False.

        Example Usage:
            ```json
            {
                "name": "get_schema_overview",
                "arguments": {"lite": true}
            }
            ```

        Example Response:
            ```json
            {
                "schema_id": "sanity.workspace.schema.default",
                "total_types": 1,
                "types": [
                    {
                        "name": "article",
                        "type": "document",
                        "title": "Article",
                        "fields_count": 3,
                        "description": "Document type with 3 fields"
                    }
                ]
            }
            ```
        """
        schema_id = schema_id or context.settings.default_schema_id
        try:
            schema = await context.get_schema(schema_id)
        except Exception as e:
            return handle_mcp_tool_error("get_schema_overview", e, {"schema_id": schema_id})
        return generate_schema_overview(schema.manifests, lite=lite, schema_id=schema_id)

    @mcp_server.tool()
    @log_mcp_call
    async def get_type_schema(type_name: str, schema_id: str | None = None) -> OperationStatus:
        """Return the full definition of one schema type.

        Parameters:
            type_name (str): Name of the type, e.g. ``"article"``.
            schema_id (str, optional): Schema document id.

        Returns:
            OperationStatus: ``details.type`` holds the nested definition
            (fields, array members, reference targets, options).
        """
        try:
            schema = await context.get_schema(schema_id)
            manifest = get_type_manifest(schema.manifests, type_name)
        except Exception as e:
            return handle_mcp_tool_error("get_type_schema", e, {"type_name": type_name})
        return OperationStatus(
            success=True,
            message=f"Schema for type '{type_name}'",
            details={"type": type_details(manifest)},
        )

    @mcp_server.tool()
    @log_mcp_call
    async def validate_document(document: dict[str, Any], schema_id: str | None = None) -> ValidationReport | OperationStatus:
        """Validate a document against the schema type named by its ``_type``.

        Nothing is written. Use this to check a document before creating it.

        Parameters:
            document (dict): The candidate document, including ``_type``.
            schema_id (str, optional): Schema document id.

        Returns:
            ValidationReport: ``valid`` plus, on failure, the offending field
            path with expected and actual shapes. On success ``normalized``
            holds the document as it would be stored (reference ids reduced
            to published ids).
        """
        try:
            schema = await context.get_schema(schema_id)
        except Exception as e:
            return handle_mcp_tool_error("validate_document", e)

        type_name = document.get("_type") if isinstance(document, dict) else None
        try:
            normalized = schema.validate_document(document)
        except ValidationError as e:
            return ValidationReport(
                valid=False,
                type_name=type_name,
                field=e.field,
                message=e.message,
                expected=e.expected,
                actual=e.actual,
            )
        if type_name not in schema:
            return ValidationReport(
                valid=True,
                type_name=type_name,
                message=f"Type '{type_name}' is not defined in the schema; document accepted unchecked",
                normalized=normalized,
            )
        return ValidationReport(valid=True, type_name=type_name, normalized=normalized)

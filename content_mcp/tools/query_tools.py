"""Query Tools.

This module contains MCP tools for reading documents:
- query_documents: Run a filter with optional projection, one page at a time
- get_document: Fetch a single document, falling back between draft and published ids
"""

from typing import Any

from mcp.server import FastMCP

from ..context import ServerContext
from ..error_handler import handle_mcp_tool_error
from ..exceptions import DocumentNotFoundError
from ..exceptions import ValidationError
from ..ids import draft_id
from ..ids import is_draft_id
from ..ids import published_id
from ..logger_config import log_mcp_call
from ..models import DocumentResult
from ..models import OperationStatus
from ..models import QueryResult
from ..mutations.patch import check_query_params


def build_page_query(filter: str, projection: str | None, start: int, stop: int) -> str:
    """Compose ``*[filter][start...stop]{projection}``; ``stop`` is exclusive."""
    filter = filter.strip()
    if filter.startswith("*[") and filter.endswith("]"):
        filter = filter[2:-1]
    query = (f"*[{filter}]" if filter else "*") + f"[{start}...{stop}]"
    if projection:
        projection = projection.strip()
        if not projection.startswith("{"):
            projection = "{" + projection + "}"
        query += projection
    return query


def register_query_tools(mcp_server: FastMCP, context: ServerContext) -> None:
    """Register document read tools with the MCP server."""

    @mcp_server.tool()
    @log_mcp_call
    async def query_documents(
        filter: str,
        projection: str | None = None,
        params: dict[str, Any] | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> QueryResult | OperationStatus:
        """Run a filter against the dataset and return one page of matches.

        Parameters:
            filter (str): Filter expression, e.g. ``_type == "article" && status == $status``.
                A full ``*[...]`` form is accepted too.
            projection (str, optional): Fields to return, e.g. ``{_id, title}``.
            params (dict, optional): Values for ``$name`` placeholders in the filter.
            page (int): 1-based page number.
            page_size (int, optional): Results per page. Defaults to the
                configured page size.

        Returns:
            QueryResult: the page of results, the query that produced it and
            ``has_more`` when another page exists.

        Example Usage:
            ```json
            {
                "name": "query_documents",
                "arguments": {
                    "filter": "_type == $type",
                    "projection": "{_id, title}",
                    "params": {"type": "article"}
                }
            }
            ```

        Example Response:
            ```json
            {
                "query": "*[_type == $type][0...6]{_id, title}",
                "params": {"type": "article"},
                "page": 1,
                "page_size": 5,
                "count": 1,
                "has_more": false,
                "results": [{"_id": "article-1", "title": "Hello"}]
            }
            ```
        """
        page_size = page_size or context.settings.query_page_size
        try:
            if page < 1:
                raise ValidationError("page must be 1 or greater", field="page", actual=str(page))
            if page_size < 1:
                raise ValidationError("page_size must be 1 or greater", field="page_size", actual=str(page_size))
            check_query_params(filter, params)

            start = (page - 1) * page_size
            # One extra row tells whether another page exists.
            query = build_page_query(filter, projection, start, start + page_size + 1)
            rows = await context.store.run_query(query, params or {})
        except Exception as e:
            return handle_mcp_tool_error("query_documents", e, {"filter": filter})

        rows = list(rows or [])
        has_more = len(rows) > page_size
        results = rows[:page_size]
        return QueryResult(
            query=query,
            params=params or {},
            page=page,
            page_size=page_size,
            count=len(results),
            has_more=has_more,
            results=results,
        )

    @mcp_server.tool()
    @log_mcp_call
    async def get_document(document_id: str) -> DocumentResult | OperationStatus:
        """Fetch one document by id.

        When the id is not found as given, the draft or published counterpart
        is tried (``drafts.abc`` falls back to ``abc`` and the other way round).

        Parameters:
            document_id (str): Published or draft id.

        Returns:
            DocumentResult: the document and the id it was found under.
            A failed OperationStatus with ``DOCUMENT_NOT_FOUND`` otherwise.
        """
        fallback = published_id(document_id) if is_draft_id(document_id) else draft_id(document_id)
        try:
            for candidate in dict.fromkeys((document_id, fallback)):
                document = await context.store.fetch_document(candidate)
                if document is not None:
                    return DocumentResult(
                        requested_id=document_id,
                        resolved_id=candidate,
                        is_draft=is_draft_id(candidate),
                        document=document,
                    )
            raise DocumentNotFoundError(document_id)
        except Exception as e:
            return handle_mcp_tool_error("get_document", e, {"document_id": document_id})

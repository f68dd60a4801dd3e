"""Mutation Tools.

This module contains MCP tools that write to the dataset. Every tool builds a
MutationTransaction, validates documents against the deployed schema when
one exists, and commits atomically:
- create_document: Create one document (or createOrReplace / createIfNotExists)
- patch_document: Patch one document or every document a query matches
- delete_document: Delete by id or by query
- mutate_documents: Submit several wire-style mutations as one transaction
"""

from typing import Any
from typing import Literal

from mcp.server import FastMCP

from ..context import ServerContext
from ..error_handler import handle_mcp_tool_error
from ..logger_config import log_mcp_call
from ..models import OperationStatus
from ..mutations.models import MutationOptions
from ..mutations.models import TransactionResult
from ..mutations.transaction import MutationTransaction
from ..mutations.transaction import coerce_options
from ..mutations.transaction import submit

CreateMode = Literal["create", "createOrReplace", "createIfNotExists"]


def _result_status(result: TransactionResult) -> OperationStatus:
    return OperationStatus(
        success=result.success,
        message=result.summary,
        details=result.model_dump(exclude={"success", "summary", "warnings"}),
        warnings=result.warnings,
    )


def register_mutation_tools(mcp_server: FastMCP, context: ServerContext) -> None:
    """Register document write tools with the MCP server."""

    def options_for(return_documents: bool, visibility: str | None, dry_run: bool) -> MutationOptions:
        return coerce_options(
            {
                "return_documents": return_documents,
                "visibility": visibility or context.settings.default_visibility,
                "dry_run": dry_run,
            }
        )

    @mcp_server.tool()
    @log_mcp_call
    async def create_document(
        document: dict[str, Any],
        mode: CreateMode = "create",
        schema_id: str | None = None,
        return_documents: bool = False,
        visibility: str | None = None,
        dry_run: bool = False,
    ) -> OperationStatus:
        """Create a document after validating it against its schema type.

        Parameters:
            document (dict): The document; ``_type`` is required. ``_id`` is
                generated for ``create`` when omitted and required otherwise.
            mode (str): ``create`` (fails if the id exists), ``createOrReplace``
                or ``createIfNotExists`` (no-op if the id exists).
            schema_id (str, optional): Schema to validate against.
            return_documents (bool): Include the stored document in the result.
            visibility (str, optional): ``sync``, ``async`` or ``deferred``.
            dry_run (bool): Validate and simulate without writing.

        Returns:
            OperationStatus: ``details`` holds the transaction id, per-document
            results and, if requested, the stored documents.

        Example Usage:
            ```json
            {
                "name": "create_document",
                "arguments": {
                    "document": {"_type": "article", "title": "Hello"},
                    "return_documents": true
                }
            }
            ```

        Example Response:
            ```json
            {
                "success": true,
                "message": "Applied 1 mutation",
                "details": {
                    "transaction_id": "f3c1...",
                    "dry_run": false,
                    "results": [{"id": "Xk2...", "operation": "create"}],
                    "documents": [{"_id": "Xk2...", "_type": "article", "title": "Hello"}]
                },
                "warnings": []
            }
            ```
        """
        try:
            schema = await context.get_schema_if_deployed(schema_id)
            transaction = MutationTransaction(context.store, schema)
            transaction.add({mode: document})
            result = await transaction.commit(options_for(return_documents, visibility, dry_run))
        except Exception as e:
            return handle_mcp_tool_error("create_document", e, {"mode": mode})
        return _result_status(result)

    @mcp_server.tool()
    @log_mcp_call
    async def patch_document(
        operations: dict[str, Any],
        document_id: str | None = None,
        query: str | None = None,
        params: dict[str, Any] | None = None,
        if_revision_id: str | None = None,
        return_documents: bool = False,
        visibility: str | None = None,
        dry_run: bool = False,
    ) -> OperationStatus:
        """Apply patch operations to one document or to every match of a query.

        Operations are applied in a fixed order regardless of how they are
        listed: set, setIfMissing, unset, inc, dec, insert, diffMatchPatch.

        Parameters:
            operations (dict): Patch verbs keyed by name, e.g.
                ``{"set": {"title": "New"}, "inc": {"views": 1}}``. Array
                edits use ``{"insert": {"after": "tags[-1]", "items": ["x"]}}``.
            document_id (str, optional): Target id. Exclusive with ``query``.
            query (str, optional): Filter query selecting target documents.
            params (dict, optional): Query parameters.
            if_revision_id (str, optional): Fail with a conflict unless the
                document is still at this revision.
            return_documents (bool): Include the patched document in the result.
            visibility (str, optional): ``sync``, ``async`` or ``deferred``.
            dry_run (bool): Validate and simulate without writing.

        Returns:
            OperationStatus: transaction outcome, or a failure with
            ``CONCURRENCY_CONFLICT`` when the revision guard does not match.
        """
        target = {"id": document_id, "query": query, "params": params, "if_revision_id": if_revision_id}
        target = {key: value for key, value in target.items() if value is not None}
        try:
            transaction = MutationTransaction(context.store)
            transaction.patch(target, operations)
            result = await transaction.commit(options_for(return_documents, visibility, dry_run))
        except Exception as e:
            return handle_mcp_tool_error("patch_document", e, {"document_id": document_id, "query": query})
        return _result_status(result)

    @mcp_server.tool()
    @log_mcp_call
    async def delete_document(
        document_id: str | None = None,
        query: str | None = None,
        params: dict[str, Any] | None = None,
        visibility: str | None = None,
        dry_run: bool = False,
    ) -> OperationStatus:
        """Delete one document by id, or every document a query matches.

        Parameters:
            document_id (str, optional): Id to delete. Exclusive with ``query``.
            query (str, optional): Filter query selecting documents to delete.
            params (dict, optional): Query parameters.
            visibility (str, optional): ``sync``, ``async`` or ``deferred``.
            dry_run (bool): Report what would be deleted without deleting.

        Returns:
            OperationStatus: ``details.results`` lists each deleted id.
        """
        try:
            transaction = MutationTransaction(context.store)
            transaction.delete(document_id=document_id, query=query, params=params)
            result = await transaction.commit(options_for(False, visibility, dry_run))
        except Exception as e:
            return handle_mcp_tool_error("delete_document", e, {"document_id": document_id, "query": query})
        return _result_status(result)

    @mcp_server.tool()
    @log_mcp_call
    async def mutate_documents(
        mutations: list[dict[str, Any]],
        options: dict[str, Any] | None = None,
        schema_id: str | None = None,
    ) -> OperationStatus:
        """Submit several mutations as one all-or-nothing transaction.

        Parameters:
            mutations (list): Wire-style entries, each with one verb key:
                ``create``, ``createOrReplace``, ``createIfNotExists``
                (alias ``createIfMissing``), ``delete`` or ``patch``.
            options (dict, optional): ``returnDocuments``, ``visibility``,
                ``dryRun``, ``transactionId``, ``autoGenerateArrayKeys``.
            schema_id (str, optional): Schema used to validate created documents.

        Returns:
            OperationStatus: transaction outcome. Nothing is written when any
            entry is invalid or the store rejects the transaction.

        Example Usage:
            ```json
            {
                "name": "mutate_documents",
                "arguments": {
                    "mutations": [
                        {"createIfMissing": {"_id": "settings", "_type": "siteSettings"}},
                        {"patch": {"id": "settings", "set": {"title": "My site"}}}
                    ],
                    "options": {"returnDocuments": true}
                }
            }
            ```
        """
        try:
            options = dict(options or {})
            options.setdefault("visibility", context.settings.default_visibility)
            schema = await context.get_schema_if_deployed(schema_id)
            result = await submit(context.store, mutations, options, schema)
        except Exception as e:
            return handle_mcp_tool_error("mutate_documents", e, {"mutations": len(mutations or [])})
        return _result_status(result)

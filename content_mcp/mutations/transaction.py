"""Atomic multi-entry mutation transactions.

Entries are validated as they are added, so nothing reaches the store until
every entry is known to be well formed. ``commit`` submits all of them in one
store call; the store applies them all or none.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..error_handler import ErrorContext
from ..error_handler import validate_field_type
from ..exceptions import ConcurrencyConflict
from ..exceptions import PartialDocumentRetrievalWarning
from ..exceptions import StoreError
from ..exceptions import ValidationError
from ..ids import generate_document_id
from ..metrics_config import record_transaction
from ..schema.compiler import CompiledSchema
from ..store.base import StoreClient
from .models import CREATE_VERBS
from .models import MUTATION_VERB_ALIASES
from .models import MutationOptions
from .models import PatchTarget
from .models import PatchUnit
from .models import TransactionEntry
from .models import TransactionResult
from .patch import build_patch
from .patch import check_query_params

logger = logging.getLogger(__name__)

_TARGET_KEYS = ("id", "query", "params", "ifRevisionID", "if_revision_id", "revision")


class MutationTransaction:
    """Builder for one transaction; discarded after ``commit``."""

    def __init__(self, store: StoreClient, schema: CompiledSchema | None = None):
        self.store = store
        self.schema = schema
        self.entries: list[TransactionEntry] = []
        self._submitted = False

    def __len__(self) -> int:
        return len(self.entries)

    # --- Entry builders ---

    def create(self, document: dict[str, Any]) -> MutationTransaction:
        return self._add_document("create", document)

    def create_or_replace(self, document: dict[str, Any]) -> MutationTransaction:
        return self._add_document("createOrReplace", document)

    def create_if_missing(self, document: dict[str, Any]) -> MutationTransaction:
        return self._add_document("createIfNotExists", document)

    def delete(
        self, document_id: str | None = None, query: str | None = None, params: dict[str, Any] | None = None
    ) -> MutationTransaction:
        if bool(document_id) == bool(query):
            raise ValidationError("A delete must target exactly one of 'id' or 'query'", field="delete")
        self._ensure_open()
        if document_id:
            if not isinstance(document_id, str):
                raise ValidationError("delete id must be a string", field="delete.id", expected="string")
            self.entries.append(TransactionEntry("delete", {"id": document_id}))
        else:
            check_query_params(query, params)
            payload: dict[str, Any] = {"query": query}
            if params is not None:
                payload["params"] = params
            self.entries.append(TransactionEntry("delete", payload))
        return self

    def patch(
        self, target: PatchUnit | PatchTarget | dict[str, Any], operations: dict[str, Any] | None = None
    ) -> MutationTransaction:
        """Add a patch, either prebuilt or from a target and its operations."""
        self._ensure_open()
        unit = target if isinstance(target, PatchUnit) else build_patch(target, operations or {})
        document_id = None if unit.target.is_query else unit.target.id
        self.entries.append(TransactionEntry("patch", None, document_id=document_id, patch=unit))
        return self

    def add(self, entry: dict[str, Any]) -> MutationTransaction:
        """Add one wire-style entry such as ``{"create": {...}}`` or ``{"patch": {...}}``."""
        if not isinstance(entry, dict) or len(entry) != 1:
            raise ValidationError(
                "Each mutation entry must have exactly one verb key", field="mutations", actual=repr(entry)
            )
        verb, body = next(iter(entry.items()))
        verb = MUTATION_VERB_ALIASES.get(verb, verb)

        if verb in CREATE_VERBS:
            return self._add_document(verb, body)
        if verb == "delete":
            if isinstance(body, str):
                return self.delete(document_id=body)
            if not isinstance(body, dict):
                raise ValidationError("delete must be an id or an object", field="delete")
            return self.delete(document_id=body.get("id"), query=body.get("query"), params=body.get("params"))
        if verb == "patch":
            if not isinstance(body, dict):
                raise ValidationError("patch must be an object", field="patch")
            target = {key: value for key, value in body.items() if key in _TARGET_KEYS}
            operations = {key: value for key, value in body.items() if key not in _TARGET_KEYS}
            return self.patch(target, operations)
        raise ValidationError(f"Unknown mutation verb '{verb}'", field="mutations")

    def _add_document(self, verb: str, document: Any) -> MutationTransaction:
        self._ensure_open()
        if not isinstance(document, dict):
            raise ValidationError(f"'{verb}' requires a document object", field=verb, expected="object")
        document = dict(document)
        if not document.get("_type"):
            raise ValidationError("document is missing its type discriminator", field="_type", expected="string")
        if not document.get("_id"):
            if verb != "create":
                raise ValidationError(f"'{verb}' requires an explicit _id", field="_id", expected="string")
            document["_id"] = generate_document_id()

        if self.schema is not None:
            document = self.schema.validate_document(document)
        self.entries.append(TransactionEntry(verb, document, document_id=document["_id"]))
        return self

    def _ensure_open(self) -> None:
        if self._submitted:
            raise ValidationError("Transaction has already been submitted", field="transaction")

    # --- Submission ---

    def to_mutations(self) -> list[dict[str, Any]]:
        return [entry.to_mutation() for entry in self.entries]

    async def commit(self, options: MutationOptions | dict[str, Any] | None = None) -> TransactionResult:
        """Submit every entry as one atomic unit.

        Raises:
            ValidationError: The transaction is empty or already submitted.
            ConcurrencyConflict: A revision guard did not match.
            StoreError: The store failed the commit, annotated with the entries.
        """
        options = coerce_options(options)
        self._ensure_open()
        if not self.entries:
            raise ValidationError("At least one mutation is required", field="mutations")

        mutations = self.to_mutations()
        self._submitted = True
        with ErrorContext("commit_transaction", entries=len(mutations), dry_run=options.dry_run) as ctx:
            try:
                committed = await self.store.commit_transaction(mutations, options)
            except ConcurrencyConflict:
                record_transaction("conflict")
                raise
            except StoreError as e:
                record_transaction("error")
                raise StoreError(
                    operation="commit_transaction",
                    failure_reason=e.failure_reason,
                    status_code=e.status_code,
                    details={**e.details, "entries": [entry.verb for entry in self.entries]},
                ) from e
            ctx.result = committed.results
        record_transaction("dry_run" if options.dry_run else "success")

        documents: list[dict[str, Any]] = []
        warnings: list[str] = []
        if options.return_documents and not options.dry_run:
            documents, warnings = await self._fetch_documents()

        verb = "Validated" if options.dry_run else "Applied"
        return TransactionResult(
            success=True,
            transaction_id=committed.transaction_id,
            dry_run=options.dry_run,
            results=committed.results,
            documents=documents,
            warnings=warnings,
            summary=f"{verb} {len(mutations)} mutation{'' if len(mutations) == 1 else 's'}",
        )

    async def _fetch_documents(self) -> tuple[list[dict[str, Any]], list[str]]:
        ids = list(dict.fromkeys(entry.document_id for entry in self.entries if entry.document_id))
        fetched = await asyncio.gather(*(self.store.fetch_document(doc_id) for doc_id in ids), return_exceptions=True)

        documents, warnings = [], []
        for doc_id, outcome in zip(ids, fetched):
            if isinstance(outcome, BaseException):
                warning = PartialDocumentRetrievalWarning(doc_id, str(outcome))
            elif outcome is None:
                warning = PartialDocumentRetrievalWarning(doc_id, "document not found")
            else:
                documents.append(outcome)
                continue
            logger.warning(str(warning))
            warnings.append(str(warning))
        return documents, warnings


def coerce_options(options: MutationOptions | dict[str, Any] | None) -> MutationOptions:
    if isinstance(options, MutationOptions):
        return options
    try:
        return MutationOptions.model_validate(options or {})
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise ValidationError(
            f"invalid mutation options: {first['msg']}",
            field=".".join(str(part) for part in first["loc"]) or "options",
        ) from e


async def submit(
    store: StoreClient,
    entries: list[dict[str, Any]],
    options: MutationOptions | dict[str, Any] | None = None,
    schema: CompiledSchema | None = None,
) -> TransactionResult:
    """Validate wire-style entries and commit them as one transaction."""
    options = coerce_options(options)
    validate_field_type({"mutations": entries}, "mutations", list)
    transaction = MutationTransaction(store, schema)
    for entry in entries:
        transaction.add(entry)
    return await transaction.commit(options)

"""Data models for patches, mutation options and transaction results.

Caller input (``PatchOperations``, ``PatchTarget``, ``MutationOptions``)
is parsed with pydantic and accepts both the wire spelling
(``setIfMissing``, ``inc``, ``diffMatchPatch``) and the descriptive
aliases (``increment``, ``decrement``, ``textDiffPatch``). Built patches are
immutable dataclasses that render to the store's wire format.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Literal

from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from ..paths import PathAddress
from ..paths import serialize_path

Visibility = Literal["sync", "async", "deferred"]
InsertPosition = Literal["before", "after", "replace"]

# Application order of patch verbs; the store applies them in this order too.
PATCH_VERB_ORDER = ("set", "setIfMissing", "unset", "inc", "dec", "insert", "diffMatchPatch")

CREATE_VERBS = ("create", "createOrReplace", "createIfNotExists")
MUTATION_VERB_ALIASES = {"createIfMissing": "createIfNotExists"}


# === Caller input ===


class InsertOperation(BaseModel):
    """Positional array edit, in modern (``after="tags[-1]"``) or legacy (``at`` + ``position``) form."""

    model_config = ConfigDict(extra="forbid")

    items: Any = None
    position: InsertPosition | None = None
    at: str | None = None
    before: str | None = None
    after: str | None = None
    replace: str | None = None


class PatchOperations(BaseModel):
    """Unordered patch verbs as supplied by a caller."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    set: dict[str, Any] | None = None
    set_if_missing: dict[str, Any] | None = Field(
        default=None, validation_alias=AliasChoices("setIfMissing", "set_if_missing")
    )
    unset: str | list[str] | None = None
    inc: dict[str, Any] | None = Field(default=None, validation_alias=AliasChoices("inc", "increment"))
    dec: dict[str, Any] | None = Field(default=None, validation_alias=AliasChoices("dec", "decrement"))
    insert: InsertOperation | None = None
    diff_match_patch: dict[str, str] | None = Field(
        default=None, validation_alias=AliasChoices("diffMatchPatch", "textDiffPatch", "diff_match_patch")
    )


class PatchTarget(BaseModel):
    """Either one document (optionally revision-guarded) or every document a query matches."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str | None = None
    if_revision_id: str | None = Field(
        default=None, validation_alias=AliasChoices("ifRevisionID", "if_revision_id", "revision")
    )
    query: str | None = None
    params: dict[str, Any] | None = None

    @property
    def is_query(self) -> bool:
        return self.query is not None


class MutationOptions(BaseModel):
    """Submission options forwarded to the store."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    return_documents: bool = Field(
        default=False, validation_alias=AliasChoices("returnDocuments", "return_documents")
    )
    visibility: Visibility = "sync"
    dry_run: bool = Field(default=False, validation_alias=AliasChoices("dryRun", "dry_run"))
    transaction_id: str | None = Field(
        default=None, validation_alias=AliasChoices("transactionId", "transaction_id")
    )
    auto_generate_array_keys: bool = Field(
        default=False, validation_alias=AliasChoices("autoGenerateArrayKeys", "auto_generate_array_keys")
    )

    def to_query_params(self) -> dict[str, str]:
        """Render the options as mutate endpoint query parameters."""
        params = {"returnIds": "true", "visibility": self.visibility}
        if self.dry_run:
            params["dryRun"] = "true"
        if self.transaction_id:
            params["transactionId"] = self.transaction_id
        if self.auto_generate_array_keys:
            params["autoGenerateArrayKeys"] = "true"
        return params


# === Built patches ===


@dataclass(frozen=True)
class InsertSpec:
    position: InsertPosition
    selector: PathAddress
    items: list[Any]

    def to_wire(self) -> dict[str, Any]:
        return {self.position: serialize_path(self.selector), "items": list(self.items)}


@dataclass(frozen=True)
class PatchOperation:
    """One normalized patch verb (wire name) and its argument."""

    verb: str
    value: Any

    def to_wire(self) -> Any:
        if isinstance(self.value, InsertSpec):
            return self.value.to_wire()
        return self.value


@dataclass(frozen=True)
class PatchUnit:
    """A target plus its operations in application order."""

    target: PatchTarget
    operations: tuple[PatchOperation, ...] = ()

    @property
    def verbs(self) -> list[str]:
        return [operation.verb for operation in self.operations]

    def operation(self, verb: str) -> PatchOperation | None:
        for operation in self.operations:
            if operation.verb == verb:
                return operation
        return None

    def to_mutation(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.target.is_query:
            body["query"] = self.target.query
            if self.target.params:
                body["params"] = self.target.params
        else:
            body["id"] = self.target.id
            if self.target.if_revision_id:
                body["ifRevisionID"] = self.target.if_revision_id
        for operation in self.operations:
            body[operation.verb] = operation.to_wire()
        return {"patch": body}


# === Results ===


class TransactionResult(BaseModel):
    """Outcome of one submitted transaction."""

    success: bool
    transaction_id: str | None = None
    dry_run: bool = False
    results: list[dict[str, Any]] = []
    documents: list[dict[str, Any]] = []
    warnings: list[str] = []
    summary: str = ""


@dataclass
class TransactionEntry:
    """A validated mutation waiting for commit."""

    verb: str
    payload: Any
    document_id: str | None = None
    patch: PatchUnit | None = field(default=None)

    def to_mutation(self) -> dict[str, Any]:
        if self.patch is not None:
            return self.patch.to_mutation()
        return {self.verb: self.payload}

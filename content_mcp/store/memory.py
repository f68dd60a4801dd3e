"""In-memory content store.

Holds documents in a dictionary and applies wire-format transactions
atomically: a commit works on a copy and swaps it in only when every
mutation succeeded. Queries support a small filter subset:

    *[_type == "post" && status != $status && _id in ["a", "b"]][0...10]{_id, title}

i.e. ``==``, ``!=`` and ``in`` comparisons and ``defined(field)`` joined by
``&&``, an optional ``[n]`` / ``[a...b]`` / ``[a..b]`` slice and an optional
flat projection.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import re
import uuid
from datetime import datetime
from datetime import timezone
from typing import Any

from ..exceptions import ConcurrencyConflict
from ..exceptions import StoreError
from .base import CommitResult
from .base import StoreClient
from .patching import apply_patch
from .patching import ensure_array_keys

logger = logging.getLogger(__name__)

_CONDITION_RE = re.compile(r"(?P<field>[A-Za-z_][\w.]*)\s*(?P<op>==|!=|\bin\b)\s*(?P<value>.+)", re.DOTALL)
_DEFINED_RE = re.compile(r"defined\(\s*(?P<field>[A-Za-z_][\w.]*)\s*\)")
_SLICE_RE = re.compile(r"\s*(-?\d+)\s*(?:(\.\.\.?)\s*(-?\d+)\s*)?")
_PARAM_RE = re.compile(r"\$([A-Za-z_]\w*)")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _new_revision() -> str:
    return uuid.uuid4().hex


# --- Query subset ---


def _read_group(text: str, start: int, opener: str, closer: str) -> tuple[str, int]:
    """Return the content of the bracket group opening at ``start`` and the index after it."""
    depth, quote, i = 0, None, start
    while i < len(text):
        char = text[i]
        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[start + 1 : i], i + 1
        i += 1
    raise StoreError("query", f"Unbalanced '{opener}' in query")


def _split_top_level(text: str, separator: str) -> list[str]:
    parts, depth, quote, current, i = [], 0, None, [], 0
    while i < len(text):
        char = text[i]
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char in "[(":
            depth += 1
        elif char in "])":
            depth -= 1
        elif depth == 0 and text.startswith(separator, i):
            parts.append("".join(current))
            current = []
            i += len(separator)
            continue
        current.append(char)
        i += 1
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def _literal(text: str, params: dict[str, Any]) -> Any:
    text = text.strip()
    param = _PARAM_RE.fullmatch(text)
    if param:
        name = param.group(1)
        if name not in params:
            raise StoreError("query", f"Query parameter ${name} was not provided")
        return params[name]
    if text.startswith("[") and text.endswith("]"):
        return [_literal(part, params) for part in _split_top_level(text[1:-1], ",")]
    if len(text) >= 2 and text[0] == text[-1] == "'":
        text = json.dumps(text[1:-1])
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise StoreError("query", f"Unsupported value in query: {text}") from e


def _field_value(document: dict[str, Any], field: str) -> Any:
    node: Any = document
    for part in field.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


class _Condition:
    def __init__(self, text: str, params: dict[str, Any]):
        defined = _DEFINED_RE.fullmatch(text)
        if defined:
            self.field, self.op, self.value = defined.group("field"), "defined", None
            return
        match = _CONDITION_RE.fullmatch(text)
        if not match:
            raise StoreError("query", f"Unsupported filter condition: {text}")
        self.field = match.group("field")
        self.op = match.group("op")
        self.value = _literal(match.group("value"), params)
        if self.op == "in" and not isinstance(self.value, list):
            raise StoreError("query", f"'in' needs an array: {text}")

    def matches(self, document: dict[str, Any]) -> bool:
        actual = _field_value(document, self.field)
        if self.op == "defined":
            return actual is not None
        if self.op == "==":
            return actual == self.value
        if self.op == "!=":
            return actual != self.value
        return actual in self.value


class ParsedQuery:
    """A query of the supported subset, ready to run against a document list."""

    def __init__(self, query: str, params: dict[str, Any] | None = None):
        params = params or {}
        text = query.strip()
        if not text.startswith("*"):
            raise StoreError("query", "Only '*[...]' queries are supported by the in-memory store")
        i = 1
        self.conditions: list[_Condition] = []
        self.slice: tuple[int, int | None] | None = None
        self.projection: list[str] | None = None

        groups = 0
        while i < len(text):
            char = text[i]
            if char.isspace():
                i += 1
            elif char == "[":
                content, i = _read_group(text, i, "[", "]")
                groups += 1
                if groups == 1 and not _SLICE_RE.fullmatch(content):
                    self.conditions = [_Condition(part, params) for part in _split_top_level(content, "&&")]
                else:
                    self.slice = self._parse_slice(content)
            elif char == "{":
                content, i = _read_group(text, i, "{", "}")
                self.projection = [name.strip() for name in content.split(",") if name.strip()]
            else:
                raise StoreError("query", f"Unsupported query syntax near: {text[i:]}")

    @staticmethod
    def _parse_slice(content: str) -> tuple[int, int | None]:
        match = _SLICE_RE.fullmatch(content)
        if not match:
            raise StoreError("query", f"Unsupported slice [{content}]")
        start, dots, end = match.groups()
        if dots is None:
            return int(start), None
        stop = int(end) + (1 if dots == ".." else 0)
        return int(start), stop

    def run(self, documents: list[dict[str, Any]]) -> Any:
        matched = [doc for doc in documents if all(cond.matches(doc) for cond in self.conditions)]
        if self.slice is not None:
            start, stop = self.slice
            if stop is None:
                picked = matched[start] if -len(matched) <= start < len(matched) else None
                return self._project(picked) if picked is not None else None
            matched = matched[start:stop]
        return [self._project(doc) for doc in matched]

    def _project(self, document: dict[str, Any]) -> dict[str, Any]:
        if self.projection is None:
            return copy.deepcopy(document)
        projected = copy.deepcopy(document) if "..." in self.projection else {}
        for name in self.projection:
            if name != "..." and name in document:
                projected[name] = copy.deepcopy(document[name])
        return projected


# --- Store ---


class InMemoryStoreClient(StoreClient):
    """Dictionary-backed store with atomic commits and revision guards."""

    def __init__(self, project_id: str = "local", dataset: str = "production", documents=None):
        self._project_id = project_id
        self._dataset = dataset
        self._documents: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        for document in documents or []:
            self.seed(document)

    @property
    def store_type(self) -> str:
        return "memory"

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def dataset(self) -> str:
        return self._dataset

    @property
    def documents(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._documents)

    def seed(self, document: dict[str, Any]) -> dict[str, Any]:
        """Insert a document directly, bypassing transactions (fixtures, local setup)."""
        stored = copy.deepcopy(document)
        stamp = _now()
        stored.setdefault("_rev", _new_revision())
        stored.setdefault("_createdAt", stamp)
        stored.setdefault("_updatedAt", stamp)
        self._documents[stored["_id"]] = stored
        return copy.deepcopy(stored)

    async def fetch_document(self, document_id: str) -> dict[str, Any] | None:
        document = self._documents.get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def run_query(self, query: str, params: dict[str, Any] | None = None) -> Any:
        return ParsedQuery(query, params).run(list(self._documents.values()))

    async def commit_transaction(self, mutations, options) -> CommitResult:
        async with self._lock:
            working = copy.deepcopy(self._documents)
            results: list[dict[str, Any]] = []
            for index, mutation in enumerate(mutations):
                verb, body = next(iter(mutation.items()))
                try:
                    results.extend(self._apply(working, verb, body, options))
                except StoreError as e:
                    e.details.setdefault("mutation_index", index)
                    raise

            if not options.dry_run:
                self._documents = working
            transaction_id = options.transaction_id or uuid.uuid4().hex
            logger.debug("Committed %d mutations as %s (dry_run=%s)", len(mutations), transaction_id, options.dry_run)
            return CommitResult(
                transaction_id=transaction_id,
                results=results,
                document_ids=list(dict.fromkeys(result["id"] for result in results)),
            )

    # --- Mutation application ---

    def _apply(self, working: dict[str, dict[str, Any]], verb: str, body: Any, options) -> list[dict[str, Any]]:
        if verb in ("create", "createOrReplace", "createIfNotExists"):
            return [self._store_document(working, verb, body, options)]
        if verb == "delete":
            ids = [body["id"]] if "id" in body else self._matching_ids(working, body)
            for document_id in ids:
                working.pop(document_id, None)
            return [{"id": document_id, "operation": "delete"} for document_id in ids]
        if verb == "patch":
            ids = [body["id"]] if "id" in body else self._matching_ids(working, body)
            return [self._patch_document(working, document_id, body, options) for document_id in ids]
        raise StoreError("commit_transaction", f"Unknown mutation '{verb}'")

    def _matching_ids(self, working, body: dict[str, Any]) -> list[str]:
        matched = ParsedQuery(body["query"], body.get("params")).run(list(working.values()))
        if isinstance(matched, dict):
            matched = [matched]
        return [doc["_id"] for doc in matched or [] if "_id" in doc]

    def _store_document(self, working, verb: str, document: dict[str, Any], options) -> dict[str, Any]:
        document_id = document["_id"]
        existing = working.get(document_id)
        if existing is not None and verb == "create":
            raise StoreError(
                "commit_transaction",
                f"Document by ID \"{document_id}\" already exists",
                status_code=409,
                details={"document_id": document_id},
            )
        if existing is not None and verb == "createIfNotExists":
            return {"id": document_id, "operation": "none"}

        stored = copy.deepcopy(document)
        if options.auto_generate_array_keys:
            ensure_array_keys(stored)
        stamp = _now()
        stored["_rev"] = _new_revision()
        stored["_createdAt"] = existing["_createdAt"] if existing else stored.get("_createdAt", stamp)
        stored["_updatedAt"] = stamp
        working[document_id] = stored
        return {"id": document_id, "operation": "update" if existing else "create"}

    def _patch_document(self, working, document_id: str, body: dict[str, Any], options) -> dict[str, Any]:
        current = working.get(document_id)
        if current is None:
            raise StoreError(
                "commit_transaction",
                f"Cannot patch missing document \"{document_id}\"",
                status_code=404,
                details={"document_id": document_id},
            )
        expected = body.get("ifRevisionID")
        if expected and current.get("_rev") != expected:
            raise ConcurrencyConflict(document_id, expected_revision=expected, current_revision=current.get("_rev"))

        patched = apply_patch(current, body)
        if options.auto_generate_array_keys:
            ensure_array_keys(patched)
        patched["_id"] = document_id
        patched["_rev"] = _new_revision()
        patched["_updatedAt"] = _now()
        working[document_id] = patched
        return {"id": document_id, "operation": "update"}

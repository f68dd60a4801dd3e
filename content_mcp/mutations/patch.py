"""Patch builder: caller-supplied patch verbs in, a normalized ``PatchUnit`` out.

Verbs are emitted in a fixed order (set, setIfMissing, unset, inc, dec,
insert, diffMatchPatch) whatever order the caller used. Every field path is
compiled through the path parser and re-serialized in canonical form, so
malformed paths fail here, before anything reaches the store.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import PathSyntaxError
from ..exceptions import ValidationError
from ..paths import parse_path
from ..paths import serialize_path
from .models import InsertOperation
from .models import InsertSpec
from .models import PatchOperation
from .models import PatchOperations
from .models import PatchTarget
from .models import PatchUnit

logger = logging.getLogger(__name__)

_QUERY_PARAM_RE = re.compile(r"\$[A-Za-z_]\w*")


def _pydantic_to_validation_error(error: PydanticValidationError, what: str) -> ValidationError:
    first = error.errors()[0] if error.errors() else {"loc": (), "msg": str(error)}
    location = ".".join(str(part) for part in first["loc"]) or None
    return ValidationError(f"invalid {what}: {first['msg']}", field=location)


def query_requires_params(query: str) -> bool:
    """True when the query references ``$name`` parameters."""
    return bool(_QUERY_PARAM_RE.search(query))


def check_query_params(query: str, params: dict[str, Any] | None) -> None:
    if query_requires_params(query) and params is None:
        raise ValidationError(
            "Query contains parameters but no params object was provided",
            field="params",
            expected="object",
            actual="missing",
        )


def build_target(target: PatchTarget | dict[str, Any]) -> PatchTarget:
    """Validate the exclusive id-or-query target of a patch."""
    if not isinstance(target, PatchTarget):
        try:
            target = PatchTarget.model_validate(target)
        except PydanticValidationError as e:
            raise _pydantic_to_validation_error(e, "patch target") from e

    has_id = bool(target.id)
    has_query = bool(target.query)
    if has_id == has_query:
        raise ValidationError("A patch must target exactly one of 'id' or 'query'", field="target")
    if has_query:
        if target.if_revision_id:
            raise ValidationError(
                "A revision guard requires a single document id, not a query", field="ifRevisionID"
            )
        check_query_params(target.query, target.params)
    elif target.params:
        raise ValidationError("'params' only applies to query-targeted patches", field="params")
    return target


def _writable_path(text: str) -> str:
    address = parse_path(text)
    if address.is_read_only:
        raise PathSyntaxError("Index ranges cannot be used as write targets", path=text)
    return serialize_path(address)


def _canonical_fields(verb: str, fields: dict[str, Any], numeric: bool = False) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for raw_path, value in fields.items():
        path = _writable_path(raw_path)
        if path in result:
            raise ValidationError(f"'{verb}' names the same field twice", field=path)
        if numeric and (isinstance(value, bool) or not isinstance(value, (int, float))):
            raise ValidationError(
                f"'{verb}' amounts must be numbers",
                field=path,
                expected="number",
                actual=type(value).__name__,
            )
        result[path] = value
    return result


def _resolve_insert(insert: InsertOperation) -> InsertSpec | None:
    """Resolve the insert selector, or return None to drop an unusable insert step."""
    modern = {name: getattr(insert, name) for name in ("before", "after", "replace") if getattr(insert, name)}
    if len(modern) > 1:
        raise ValidationError(
            "Insert accepts only one of 'before', 'after' or 'replace'", field="insert"
        )
    if modern and insert.at:
        raise ValidationError(
            "Insert cannot combine 'at' with 'before', 'after' or 'replace'", field="insert"
        )

    if modern:
        position, selector_text = next(iter(modern.items()))
        if insert.position and insert.position != position:
            raise ValidationError(
                f"Insert position '{insert.position}' contradicts selector key '{position}'",
                field="insert.position",
            )
    elif insert.at:
        position, selector_text = insert.position, insert.at
        if position is None:
            logger.info("Dropping insert at %r: no position given", insert.at)
            return None
    else:
        logger.info("Dropping insert: no selector given")
        return None

    items = insert.items
    if items is None:
        items = []
    elif not isinstance(items, list):
        items = [items]
    if not items:
        logger.info("Dropping insert %s %r: no items", position, selector_text)
        return None

    selector = parse_path(selector_text)
    if selector.is_read_only:
        raise PathSyntaxError("Insert selector cannot be an index range", path=selector_text)
    return InsertSpec(position=position, selector=selector, items=items)


def build_patch(target: PatchTarget | dict[str, Any], operations: PatchOperations | dict[str, Any]) -> PatchUnit:
    """Build a normalized ``PatchUnit``.

    Args:
        target: ``{"id": ..., "ifRevisionID": ...}`` or ``{"query": ..., "params": ...}``.
        operations: Patch verbs in any order, wire or alias spelling.

    Raises:
        ValidationError: Bad target, unknown verbs, non-numeric inc/dec or
            conflicting insert forms.
        PathSyntaxError: A field path or insert selector does not parse.
    """
    target = build_target(target)
    if not isinstance(operations, PatchOperations):
        try:
            operations = PatchOperations.model_validate(operations or {})
        except PydanticValidationError as e:
            raise _pydantic_to_validation_error(e, "patch operations") from e

    built: list[PatchOperation] = []
    if operations.set:
        built.append(PatchOperation("set", _canonical_fields("set", operations.set)))
    if operations.set_if_missing:
        built.append(PatchOperation("setIfMissing", _canonical_fields("setIfMissing", operations.set_if_missing)))
    if operations.unset:
        paths = [operations.unset] if isinstance(operations.unset, str) else operations.unset
        built.append(PatchOperation("unset", [_writable_path(path) for path in paths]))
    if operations.inc:
        built.append(PatchOperation("inc", _canonical_fields("inc", operations.inc, numeric=True)))
    if operations.dec:
        built.append(PatchOperation("dec", _canonical_fields("dec", operations.dec, numeric=True)))
    if operations.insert is not None:
        spec = _resolve_insert(operations.insert)
        if spec is not None:
            built.append(PatchOperation("insert", spec))
    if operations.diff_match_patch:
        built.append(
            PatchOperation("diffMatchPatch", _canonical_fields("diffMatchPatch", operations.diff_match_patch))
        )

    if not built:
        logger.info("Patch for %s carries no operations", target.id or target.query)
    return PatchUnit(target=target, operations=tuple(built))

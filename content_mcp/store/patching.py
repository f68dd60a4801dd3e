"""Apply wire-format patch bodies to in-memory documents.

Used by the in-memory store. Paths arrive in canonical string form and are
parsed with the same path compiler the patch builder uses. Selectors that
match nothing are no-ops, as in the remote store.
"""

from __future__ import annotations

import copy
import secrets
from typing import Any

from ..exceptions import StoreError
from ..paths import Index
from ..paths import KeyMatch
from ..paths import PathAddress
from ..paths import Property
from ..paths import parse_path
from ..mutations.models import PATCH_VERB_ORDER

_MISSING = object()


def _slot(node: Any, segment) -> Any:
    """Key or index addressing ``segment`` inside ``node``, or ``_MISSING``."""
    if isinstance(segment, Property):
        return segment.name if isinstance(node, dict) else _MISSING
    if not isinstance(node, list):
        return _MISSING
    if isinstance(segment, Index):
        index = segment.index + len(node) if segment.index < 0 else segment.index
        return index if 0 <= index < len(node) else _MISSING
    if isinstance(segment, KeyMatch):
        for index, item in enumerate(node):
            if isinstance(item, dict) and item.get("_key") == segment.key:
                return index
        return _MISSING
    raise StoreError("patch", f"Index ranges cannot be written: {segment!r}")


def _walk_to_parent(document: dict[str, Any], address: PathAddress, create: bool) -> Any:
    node: Any = document
    for position, segment in enumerate(address[:-1]):
        slot = _slot(node, segment)
        if slot is _MISSING:
            return _MISSING
        if isinstance(segment, Property) and slot not in node:
            if not create or not isinstance(address[position + 1], Property):
                return _MISSING
            node[slot] = {}
        node = node[slot]
    return node


def get_path(document: dict[str, Any], path: str) -> Any:
    address = parse_path(path)
    parent = _walk_to_parent(document, address, create=False)
    if parent is _MISSING:
        return _MISSING
    slot = _slot(parent, address[-1])
    if slot is _MISSING or (isinstance(address[-1], Property) and slot not in parent):
        return _MISSING
    return parent[slot]


def set_path(document: dict[str, Any], path: str, value: Any, only_if_missing: bool = False) -> None:
    address = parse_path(path)
    parent = _walk_to_parent(document, address, create=True)
    if parent is _MISSING:
        return
    slot = _slot(parent, address[-1])
    if slot is _MISSING:
        return
    if only_if_missing and isinstance(address[-1], Property) and slot in parent:
        return
    if only_if_missing and not isinstance(address[-1], Property):
        return
    parent[slot] = copy.deepcopy(value)


def unset_path(document: dict[str, Any], path: str) -> None:
    address = parse_path(path)
    parent = _walk_to_parent(document, address, create=False)
    if parent is _MISSING:
        return
    slot = _slot(parent, address[-1])
    if slot is _MISSING:
        return
    if isinstance(parent, dict):
        parent.pop(slot, None)
    else:
        del parent[slot]


def adjust_number(document: dict[str, Any], path: str, amount: float) -> None:
    current = get_path(document, path)
    if current is _MISSING:
        return
    if isinstance(current, bool) or not isinstance(current, (int, float)):
        raise StoreError("patch", f"Cannot increment non-numeric value at '{path}'")
    set_path(document, path, current + amount)


def insert_items(document: dict[str, Any], position: str, selector: str, items: list[Any]) -> None:
    address = parse_path(selector)
    target = address[-1]
    if isinstance(target, Property):
        raise StoreError("patch", f"Insert selector '{selector}' must address an array element")
    parent = _walk_to_parent(document, address, create=False)
    if not isinstance(parent, list):
        return

    items = copy.deepcopy(items)
    slot = _slot(parent, target)
    if slot is _MISSING:
        # Index selectors on an empty array still anchor at the ends
        if isinstance(target, Index) and not parent:
            parent.extend(items)
        return
    if position == "before":
        parent[slot:slot] = items
    elif position == "after":
        parent[slot + 1 : slot + 1] = items
    else:
        parent[slot : slot + 1] = items


def ensure_array_keys(value: Any) -> Any:
    """Give every object inside an array a random ``_key`` when it has none."""
    if isinstance(value, list):
        for item in value:
            if isinstance(item, dict) and not item.get("_key"):
                item["_key"] = secrets.token_hex(6)
            ensure_array_keys(item)
    elif isinstance(value, dict):
        for child in value.values():
            ensure_array_keys(child)
    return value


def apply_patch(document: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Return a patched copy of ``document``; verbs apply in the fixed store order."""
    result = copy.deepcopy(document)
    for verb in PATCH_VERB_ORDER:
        if verb not in patch:
            continue
        argument = patch[verb]
        if verb == "set":
            for path, value in argument.items():
                set_path(result, path, value)
        elif verb == "setIfMissing":
            for path, value in argument.items():
                set_path(result, path, value, only_if_missing=True)
        elif verb == "unset":
            for path in [argument] if isinstance(argument, str) else argument:
                unset_path(result, path)
        elif verb in ("inc", "dec"):
            sign = 1 if verb == "inc" else -1
            for path, amount in argument.items():
                adjust_number(result, path, sign * amount)
        elif verb == "insert":
            position = next(key for key in ("before", "after", "replace") if key in argument)
            insert_items(result, position, argument[position], argument.get("items", []))
        else:
            raise StoreError("patch", "diffMatchPatch is not supported by the in-memory store")
    return result

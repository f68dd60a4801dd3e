"""Field path parsing and serialization.

A path string such as ``body[_key=="a1"].children[0].text`` is compiled
into a ``PathAddress``: an ordered, non-empty tuple of segments. Supported
forms:

- ``name`` / ``.name``: property access
- ``[3]`` / ``[-1]``: array index, negative counts from the end
- ``[1:3]`` / ``[:2]`` / ``[2:]``: index range (read paths only)
- ``[_key=="value"]``: array element whose ``_key`` equals ``value``
- ``['odd-name']``: quoted property name

Parsing never guesses: anything outside this grammar raises
``PathSyntaxError``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any
from typing import Union

from .exceptions import PathSyntaxError

_QUOTES = ("'", '"')
_INDEX_RE = re.compile(r"-?\d+")
_RANGE_RE = re.compile(r"(-?\d+)?\s*:\s*(-?\d+)?")
_KEY_MATCH_RE = re.compile(r"_key\s*==\s*(.*)", re.DOTALL)
_BARE_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class Property:
    """Object field access."""

    name: str


@dataclass(frozen=True)
class Index:
    """Fixed array position; negative values count from the end."""

    index: int


@dataclass(frozen=True)
class IndexRange:
    """Array slice; either bound may be open."""

    start: int | None = None
    end: int | None = None


@dataclass(frozen=True)
class KeyMatch:
    """Array element selected by its stable ``_key``."""

    key: str


PathSegment = Union[Property, Index, IndexRange, KeyMatch]


class PathAddress(tuple):
    """Immutable, non-empty sequence of path segments."""

    def __new__(cls, segments):
        segments = tuple(segments)
        if not segments:
            raise ValueError("PathAddress requires at least one segment")
        for segment in segments:
            if not isinstance(segment, (Property, Index, IndexRange, KeyMatch)):
                raise TypeError(f"Invalid path segment: {segment!r}")
            if isinstance(segment, Property) and not segment.name:
                raise ValueError("Property segments need a non-empty name")
            if isinstance(segment, KeyMatch) and not segment.key:
                raise ValueError("Key match segments need a non-empty key")
        return super().__new__(cls, segments)

    @classmethod
    def parse(cls, text: str) -> PathAddress:
        return parse_path(text)

    @property
    def is_read_only(self) -> bool:
        """Ranges can be read but not written through."""
        return any(isinstance(segment, IndexRange) for segment in self)

    @property
    def parent(self) -> PathAddress | None:
        return PathAddress(self[:-1]) if len(self) > 1 else None

    def child(self, segment: PathSegment) -> PathAddress:
        return PathAddress((*self, segment))

    def to_json(self) -> list[dict[str, Any]]:
        """Describe the segments as plain dictionaries."""
        result = []
        for segment in self:
            if isinstance(segment, Property):
                result.append({"kind": "property", "name": segment.name})
            elif isinstance(segment, Index):
                result.append({"kind": "index", "index": segment.index})
            elif isinstance(segment, IndexRange):
                result.append({"kind": "range", "start": segment.start, "end": segment.end})
            else:
                result.append({"kind": "key", "key": segment.key})
        return result

    def __str__(self) -> str:
        return serialize_path(self)

    def __repr__(self) -> str:
        return f"PathAddress({serialize_path(self)!r})"


# --- Parsing ---


def parse_path(text: str) -> PathAddress:
    """Compile a path string into a ``PathAddress``.

    Raises:
        PathSyntaxError: empty input, stray dots, unterminated brackets or
            quotes, or bracket content that is not an index, range, key match
            or quoted property name.
    """
    if not isinstance(text, str) or not text:
        raise PathSyntaxError("Path is required", path=text if isinstance(text, str) else repr(text))

    segments: list[PathSegment] = []
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        if char == "[":
            content, i = _read_bracket(text, i)
            segments.append(_bracket_segment(content, text, i))
        elif char == ".":
            if not segments:
                raise PathSyntaxError("Path cannot start with '.'", path=text, position=i)
            if i + 1 >= length:
                raise PathSyntaxError("Path cannot end with '.'", path=text, position=i)
            following = text[i + 1]
            i += 1
            if following == "[":
                continue
            if following in ".]":
                raise PathSyntaxError("Expected a property name after '.'", path=text, position=i)
            name, i = _read_name(text, i)
            segments.append(Property(name))
        elif char == "]":
            raise PathSyntaxError("Unexpected ']'", path=text, position=i)
        else:
            if segments:
                raise PathSyntaxError("Expected '.' or '[' between segments", path=text, position=i)
            name, i = _read_name(text, i)
            segments.append(Property(name))

    return PathAddress(segments)


def _read_name(text: str, start: int) -> tuple[str, int]:
    end = start
    while end < len(text) and text[end] not in ".[]":
        end += 1
    name = text[start:end]
    if any(quote in name for quote in _QUOTES):
        raise PathSyntaxError("Quoted names must be wrapped in brackets", path=text, position=start)
    return name, end


def _read_bracket(text: str, start: int) -> tuple[str, int]:
    """Return the raw content of the bracket group at ``start`` and the index after it."""
    quote = None
    i = start + 1
    while i < len(text):
        char = text[i]
        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in _QUOTES:
            quote = char
        elif char == "[":
            raise PathSyntaxError("Nested '[' inside brackets", path=text, position=i)
        elif char == "]":
            return text[start + 1 : i], i + 1
        i += 1

    if quote:
        raise PathSyntaxError("Unterminated quote", path=text, position=start)
    raise PathSyntaxError("Unterminated '['", path=text, position=start)


def _bracket_segment(content: str, text: str, position: int) -> PathSegment:
    body = content.strip()
    if not body:
        raise PathSyntaxError("Empty brackets", path=text, position=position)

    key_match = _KEY_MATCH_RE.fullmatch(body)
    if key_match:
        raw = key_match.group(1).strip()
        if not raw or raw[0] not in _QUOTES:
            raise PathSyntaxError("Key match needs a quoted value", path=text, position=position)
        key = _unquote(raw, text, position)
        if not key:
            raise PathSyntaxError("Key match value cannot be empty", path=text, position=position)
        return KeyMatch(key)

    if _INDEX_RE.fullmatch(body):
        return Index(int(body))

    range_match = _RANGE_RE.fullmatch(body)
    if range_match:
        start, end = range_match.groups()
        return IndexRange(
            start=int(start) if start is not None else None,
            end=int(end) if end is not None else None,
        )

    if body[0] in _QUOTES:
        name = _unquote(body, text, position)
        if not name:
            raise PathSyntaxError("Quoted property name cannot be empty", path=text, position=position)
        return Property(name)

    raise PathSyntaxError(f"Unsupported bracket content [{content}]", path=text, position=position)


def _unquote(raw: str, text: str, position: int) -> str:
    quote = raw[0]
    out = []
    i = 1
    while i < len(raw):
        char = raw[i]
        if char == "\\":
            if i + 1 >= len(raw):
                break
            out.append(raw[i + 1])
            i += 2
            continue
        if char == quote:
            if i != len(raw) - 1:
                raise PathSyntaxError("Unexpected text after closing quote", path=text, position=position)
            return "".join(out)
        out.append(char)
        i += 1
    raise PathSyntaxError("Unterminated quote", path=text, position=position)


# --- Serialization ---


def serialize_path(address) -> str:
    """Render segments in canonical string form.

    ``serialize_path(parse_path(serialize_path(a))) == serialize_path(a)``
    holds for every address.
    """
    parts: list[str] = []
    for segment in address:
        if isinstance(segment, Property):
            if _BARE_NAME_RE.fullmatch(segment.name):
                parts.append(segment.name if not parts else f".{segment.name}")
            else:
                parts.append("[" + _quote(segment.name, "'") + "]")
        elif isinstance(segment, Index):
            parts.append(f"[{segment.index}]")
        elif isinstance(segment, IndexRange):
            start = "" if segment.start is None else str(segment.start)
            end = "" if segment.end is None else str(segment.end)
            parts.append(f"[{start}:{end}]")
        elif isinstance(segment, KeyMatch):
            parts.append("[_key==" + _quote(segment.key, '"') + "]")
        else:
            raise TypeError(f"Invalid path segment: {segment!r}")
    if not parts:
        raise ValueError("Cannot serialize an empty path")
    return "".join(parts)


def _quote(value: str, quote: str) -> str:
    escaped = value.replace("\\", "\\\\").replace(quote, f"\\{quote}")
    return f"{quote}{escaped}{quote}"


def normalize_path(text: str) -> str:
    """Parse and re-serialize a path string into canonical form."""
    return serialize_path(parse_path(text))


def path_from_parts(parts) -> PathAddress:
    """Build an address from validator locations (strings, ints, or ``(\"_key\", k)`` pairs)."""
    segments: list[PathSegment] = []
    for part in parts:
        if isinstance(part, int):
            segments.append(Index(part))
        elif isinstance(part, tuple):
            segments.append(KeyMatch(part[1]))
        else:
            segments.append(Property(str(part)))
    return PathAddress(segments)

"""Validator variants produced by the schema compiler.

Every validator exposes ``validate(value, location=())`` which returns the
accepted (possibly normalized) value or raises ``ValidationError`` naming the
failing field path. Strict and permissive validators share this interface,
so object validators can mix them freely.
"""

from __future__ import annotations

import re
from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from datetime import date
from datetime import datetime
from typing import Any

from pydantic import AnyUrl
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import SchemaConfigError
from ..exceptions import ValidationError
from ..ids import published_id
from ..paths import path_from_parts
from ..paths import serialize_path

_ISO_DATE_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}")


def json_type_name(value: Any) -> str:
    """Name the JSON type of a Python value for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def field_name(location: tuple) -> str | None:
    if not location:
        return None
    return serialize_path(path_from_parts(location))


def _element_location(location: tuple, index: int, item: Any) -> tuple:
    if isinstance(item, dict) and isinstance(item.get("_key"), str) and item["_key"]:
        return (*location, ("_key", item["_key"]))
    return (*location, index)


class Validator(ABC):
    """Checks and normalizes a value of one schema type."""

    type_name: str = "unknown"

    @abstractmethod
    def validate(self, value: Any, location: tuple = ()) -> Any:
        """Return the accepted value or raise ``ValidationError``."""

    def is_valid(self, value: Any) -> bool:
        try:
            self.validate(value)
        except ValidationError:
            return False
        return True

    def fail(self, message: str, location: tuple, value: Any = None, expected: str | None = None):
        raise ValidationError(
            message,
            field=field_name(location),
            expected=expected or self.type_name,
            actual=json_type_name(value),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.type_name!r})"


class AnyValidator(Validator):
    """Accepts every value unexamined."""

    type_name = "any"

    def validate(self, value: Any, location: tuple = ()) -> Any:
        return value


ANY = AnyValidator()


class PrimitiveValidator(Validator):
    """Scalar check: JSON type first, then an optional pydantic parse of the value."""

    def __init__(self, type_name: str, python_types: tuple[type, ...], adapter: TypeAdapter | None = None):
        self.type_name = type_name
        self._python_types = python_types
        self._adapter = adapter

    def validate(self, value: Any, location: tuple = ()) -> Any:
        if isinstance(value, bool) and bool not in self._python_types:
            self.fail(f"expected {self.type_name}, got boolean", location, value)
        if not isinstance(value, self._python_types):
            self.fail(f"expected {self.type_name}, got {json_type_name(value)}", location, value)
        if self._adapter is not None:
            try:
                self._adapter.validate_python(value)
            except PydanticValidationError as e:
                reason = e.errors()[0]["msg"] if e.errors() else str(e)
                self.fail(f"invalid {self.type_name}: {reason}", location, value)
        return value


class DateTimeValidator(PrimitiveValidator):
    """ISO-8601 timestamp (or calendar date) carried as a string."""

    def validate(self, value: Any, location: tuple = ()) -> Any:
        if isinstance(value, str) and not _ISO_DATE_PREFIX.match(value):
            self.fail(f"invalid {self.type_name}: expected ISO-8601 format", location, value)
        return super().validate(value, location)


class LiteralValidator(Validator):
    def __init__(self, expected: Any):
        self.expected = expected
        self.type_name = repr(expected)

    def validate(self, value: Any, location: tuple = ()) -> Any:
        if value != self.expected or isinstance(value, bool) != isinstance(self.expected, bool):
            raise ValidationError(
                f"expected {self.expected!r}, got {value!r}",
                field=field_name(location),
                expected=repr(self.expected),
                actual=repr(value),
            )
        return value


class PatternValidator(Validator):
    type_name = "string"

    def __init__(self, pattern: str, message: str):
        self._pattern = re.compile(pattern)
        self._message = message

    def validate(self, value: Any, location: tuple = ()) -> Any:
        if not isinstance(value, str):
            self.fail(f"expected string, got {json_type_name(value)}", location, value)
        if not self._pattern.fullmatch(value):
            self.fail(self._message, location, value)
        return value


class ReferenceIdValidator(Validator):
    """String id of a referenced document, optionally reduced to its published id."""

    type_name = "string"

    def __init__(self, normalize: bool):
        self.normalize = normalize

    def validate(self, value: Any, location: tuple = ()) -> Any:
        if not isinstance(value, str):
            self.fail(f"expected string, got {json_type_name(value)}", location, value)
        return published_id(value) if self.normalize else value


@dataclass
class FieldSpec:
    validator: Validator
    required: bool = False


class ObjectValidator(Validator):
    """Known fields are checked, unknown fields pass through unchanged."""

    def __init__(self, type_name: str, fields: dict[str, FieldSpec] | None = None):
        self.type_name = type_name
        self.fields: dict[str, FieldSpec] = dict(fields or {})

    def validate(self, value: Any, location: tuple = ()) -> Any:
        if not isinstance(value, dict):
            self.fail(f"expected object, got {json_type_name(value)}", location, value, expected="object")

        result = dict(value)
        for name, spec in self.fields.items():
            if name not in value:
                if spec.required:
                    raise ValidationError(
                        f"missing required field '{name}'",
                        field=field_name((*location, name)),
                        expected=spec.validator.type_name,
                        actual="missing",
                    )
                continue
            result[name] = spec.validator.validate(value[name], (*location, name))
        return result


class ArrayValidator(Validator):
    def __init__(self, member: Validator, type_name: str = "array"):
        self.member = member
        self.type_name = type_name

    def validate(self, value: Any, location: tuple = ()) -> Any:
        if not isinstance(value, list):
            self.fail(f"expected array, got {json_type_name(value)}", location, value, expected="array")
        return [
            self.member.validate(item, _element_location(location, index, item))
            for index, item in enumerate(value)
        ]


class UnionValidator(Validator):
    """Accepts a value matching at least one alternative."""

    def __init__(self, alternatives: list[Validator]):
        self.alternatives = alternatives

    @property
    def type_name(self) -> str:
        return " | ".join(alternative.type_name for alternative in self.alternatives)

    def validate(self, value: Any, location: tuple = ()) -> Any:
        errors = []
        for alternative in self.alternatives:
            try:
                return alternative.validate(value, location)
            except ValidationError as e:
                errors.append((alternative, e))

        declared = value.get("_type") if isinstance(value, dict) else None
        for alternative, error in errors:
            if declared is not None and alternative.type_name == declared:
                raise error
        raise ValidationError(
            f"value does not match any of: {self.type_name}",
            field=field_name(location),
            expected=self.type_name,
            actual=declared or json_type_name(value),
        )


class DeferredValidator(Validator):
    """Forward handle to a named type whose validator is still being built."""

    def __init__(self, name: str):
        self.name = name
        self._target: Validator | None = None

    @property
    def type_name(self) -> str:
        return self.name

    @property
    def resolved(self) -> bool:
        return self._target is not None

    @property
    def target(self) -> Validator | None:
        return self._target

    def bind(self, target: Validator) -> None:
        self._target = target

    def validate(self, value: Any, location: tuple = ()) -> Any:
        if self._target is None:
            raise SchemaConfigError(f"Type '{self.name}' was referenced before it was built", type_name=self.name)
        return self._target.validate(value, location)


# --- Primitive specializations ---

_string_validator = PrimitiveValidator("string", (str,))


def string_validator(type_name: str = "string") -> Validator:
    if type_name == "string":
        return _string_validator
    return PrimitiveValidator(type_name, (str,))


def number_validator() -> Validator:
    return PrimitiveValidator("number", (int, float))


def boolean_validator() -> Validator:
    return PrimitiveValidator("boolean", (bool,))


def url_validator() -> Validator:
    return PrimitiveValidator("url", (str,), TypeAdapter(AnyUrl))


def datetime_validator() -> Validator:
    return DateTimeValidator("datetime", (str,), TypeAdapter(datetime))


def date_validator() -> Validator:
    return DateTimeValidator("date", (str,), TypeAdapter(date))


def slug_validator() -> Validator:
    return ObjectValidator(
        "slug",
        {
            "current": FieldSpec(string_validator(), required=True),
            "_type": FieldSpec(LiteralValidator("slug"), required=True),
        },
    )


def reference_validator(normalize: bool) -> Validator:
    """``{_ref, _type: "reference"}``; field references drop draft/version qualifiers."""
    return ObjectValidator(
        "reference",
        {
            "_ref": FieldSpec(ReferenceIdValidator(normalize), required=True),
            "_type": FieldSpec(LiteralValidator("reference"), required=True),
        },
    )


_ASSET_PATTERNS = {
    "image": (
        r"image-[a-zA-Z0-9]+(-\d+x\d+-[a-z]+)?",
        "Image reference must be in the format 'image-[id]' or 'image-[id]-[dimensions]-[format]'",
    ),
    "file": (
        r"file-[a-zA-Z0-9]+(-[a-z0-9]+)?",
        "File reference must be in the format 'file-[id]' or 'file-[id]-[extension]'",
    ),
}


def asset_validator(kind: str) -> Validator:
    pattern, message = _ASSET_PATTERNS[kind]
    asset = ObjectValidator(
        "reference",
        {
            "_ref": FieldSpec(PatternValidator(pattern, message), required=True),
            "_type": FieldSpec(LiteralValidator("reference"), required=True),
        },
    )
    return ObjectValidator(
        kind,
        {
            "_type": FieldSpec(LiteralValidator(kind), required=True),
            "asset": FieldSpec(asset, required=True),
        },
    )


def block_validator() -> Validator:
    """Rich-text block: style, inline children and pass-through mark definitions."""
    span = ObjectValidator(
        "span",
        {
            "_type": FieldSpec(string_validator(), required=True),
            "text": FieldSpec(string_validator()),
            "marks": FieldSpec(ArrayValidator(string_validator())),
        },
    )
    mark_definition = ObjectValidator("markDef", {"_type": FieldSpec(string_validator(), required=True)})
    return ObjectValidator(
        "block",
        {
            "_type": FieldSpec(LiteralValidator("block"), required=True),
            "style": FieldSpec(string_validator(), required=True),
            "children": FieldSpec(ArrayValidator(span), required=True),
            "markDefs": FieldSpec(ArrayValidator(mark_definition)),
        },
    )

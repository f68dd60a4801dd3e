"""Schema-graph compiler: manifest set in, one validator per named type out.

Named types may reference each other (or themselves) through fields and
array members. The compiler memoizes a ``DeferredValidator`` for a name
*before* building that type's fields, so a cyclic reference receives the
forward handle instead of re-entering construction. Each named type is
built exactly once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import SchemaConfigError
from ..exceptions import ValidationError
from .manifest import ARRAY_KIND
from .manifest import DOCUMENT_KIND
from .manifest import OBJECT_KIND
from .manifest import ManifestType
from .manifest import TypeManifest
from .validators import ANY
from .validators import ArrayValidator
from .validators import DeferredValidator
from .validators import FieldSpec
from .validators import LiteralValidator
from .validators import ObjectValidator
from .validators import UnionValidator
from .validators import Validator
from .validators import asset_validator
from .validators import block_validator
from .validators import boolean_validator
from .validators import date_validator
from .validators import datetime_validator
from .validators import number_validator
from .validators import reference_validator
from .validators import slug_validator
from .validators import string_validator
from .validators import url_validator

logger = logging.getLogger(__name__)

_MANIFEST_LIST = TypeAdapter(list[TypeManifest])

PRIMITIVE_KINDS = frozenset(
    {"string", "text", "url", "datetime", "date", "number", "boolean", "slug", "reference", "image", "file", "block"}
)


def parse_manifests(raw: Iterable[Any]) -> list[TypeManifest]:
    """Coerce dictionaries (or already-parsed models) into ``TypeManifest`` objects."""
    items = [item.model_dump() if isinstance(item, ManifestType) else item for item in raw]
    try:
        return _MANIFEST_LIST.validate_python(items)
    except PydanticValidationError as e:
        raise SchemaConfigError(
            "Manifest set is malformed",
            details={"errors": [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]},
        ) from e


@dataclass
class CompiledSchema:
    """Validators keyed by type name, together with the manifests they came from."""

    manifests: list[TypeManifest]
    validators: dict[str, Validator] = field(default_factory=dict)

    def __contains__(self, type_name: str) -> bool:
        return type_name in self.validators

    def validator_for(self, type_name: str) -> Validator | None:
        return self.validators.get(type_name)

    def validate_document(self, document: dict[str, Any]) -> dict[str, Any]:
        """Validate a document against its declared ``_type``.

        A document without ``_type`` is rejected. Types absent from the
        schema pass through unchanged.
        """
        if not isinstance(document, dict):
            raise ValidationError("document must be an object", expected="object", actual=type(document).__name__)
        type_name = document.get("_type")
        if not isinstance(type_name, str) or not type_name:
            raise ValidationError("document is missing its type discriminator", field="_type", expected="string")
        validator = self.validators.get(type_name)
        if validator is None:
            logger.debug("No validator for type '%s', accepting document as-is", type_name)
            return document
        return validator.validate(document)


class SchemaGraphCompiler:
    """Memoizing builder over one manifest set."""

    def __init__(self, manifests: Iterable[Any]):
        self.manifests = parse_manifests(manifests)
        self._by_name: dict[str, TypeManifest] = {}
        for manifest in self.manifests:
            if manifest.name in self._by_name:
                raise SchemaConfigError(f"Duplicate type name '{manifest.name}'", type_name=manifest.name)
            self._by_name[manifest.name] = manifest
        self._memo: dict[str, DeferredValidator] = {}
        self.build_count = 0

    def compile(self) -> CompiledSchema:
        for manifest in self.manifests:
            self._resolve_named(manifest.name)

        unresolved = [name for name, handle in self._memo.items() if not handle.resolved]
        if unresolved:
            raise SchemaConfigError("Types left unresolved after compilation", details={"types": unresolved})

        validators = {name: self._memo[name].target for name in self._by_name}
        logger.info("Compiled %d schema types (%d builds)", len(validators), self.build_count)
        return CompiledSchema(manifests=self.manifests, validators=validators)

    # --- Named types ---

    def _resolve_named(self, name: str) -> Validator:
        handle = self._memo.get(name)
        if handle is not None:
            return handle

        handle = DeferredValidator(name)
        self._memo[name] = handle
        handle.bind(self._build_named(self._by_name[name]))
        return handle

    def _build_named(self, manifest: TypeManifest) -> Validator:
        self.build_count += 1
        if manifest.type == DOCUMENT_KIND:
            return self._document(manifest)
        if manifest.type == OBJECT_KIND:
            return self._object(manifest, manifest.name, type_required=True)
        if manifest.type == ARRAY_KIND:
            return self._array(manifest, manifest.name)
        if self._is_alias(manifest):
            self._check_alias_chain(manifest)
            return self._resolve_named(manifest.type)
        return self._primitive(manifest, is_field=False)

    def _is_alias(self, manifest: ManifestType) -> bool:
        return (
            manifest.type not in (DOCUMENT_KIND, OBJECT_KIND, ARRAY_KIND)
            and manifest.type in self._by_name
            and manifest.type != manifest.name
        )

    def _check_alias_chain(self, manifest: TypeManifest) -> None:
        """Raise ``SchemaConfigError`` when following aliases from ``manifest`` loops back."""
        chain = [manifest.name]
        current = self._by_name[manifest.type]
        while self._is_alias(current) or current.name in chain:
            if current.name in chain:
                raise SchemaConfigError(
                    f"Alias cycle: {' -> '.join([*chain, current.name])}",
                    type_name=manifest.name,
                    details={"chain": [*chain, current.name]},
                )
            chain.append(current.name)
            current = self._by_name[current.type]

    def _document(self, manifest: TypeManifest) -> Validator:
        fields = {
            "_id": FieldSpec(string_validator(), required=True),
            "_type": FieldSpec(LiteralValidator(manifest.name), required=True),
            "_rev": FieldSpec(string_validator()),
            "_createdAt": FieldSpec(datetime_validator()),
            "_updatedAt": FieldSpec(datetime_validator()),
        }
        fields.update(self._fields(manifest))
        return ObjectValidator(manifest.name, fields)

    def _object(self, definition: ManifestType, type_name: str | None, type_required: bool) -> Validator:
        fields: dict[str, FieldSpec] = {}
        if type_name:
            fields["_type"] = FieldSpec(LiteralValidator(type_name), required=type_required)
        fields.update(self._fields(definition))
        return ObjectValidator(type_name or OBJECT_KIND, fields)

    def _fields(self, definition: ManifestType) -> dict[str, FieldSpec]:
        fields = {}
        for member in definition.fields or []:
            if not member.name:
                raise SchemaConfigError(
                    f"Field without a name in type '{definition.name}'", type_name=definition.name
                )
            fields[member.name] = FieldSpec(self._member(member))
        return fields

    def _array(self, definition: ManifestType, type_name: str = ARRAY_KIND) -> Validator:
        members = [self._member(member) for member in definition.of or []]
        if not members:
            return ArrayValidator(ANY, type_name)
        if len(members) == 1:
            return ArrayValidator(members[0], type_name)
        return ArrayValidator(UnionValidator(members), type_name)

    # --- Fields and array members ---

    def _member(self, definition: ManifestType) -> Validator:
        kind = definition.type
        if kind in self._by_name:
            return self._resolve_named(kind)
        if kind == ARRAY_KIND:
            return self._array(definition)
        if kind in (OBJECT_KIND, DOCUMENT_KIND):
            return self._object(definition, definition.name, type_required=False)
        return self._primitive(definition, is_field=True)

    def _primitive(self, definition: ManifestType, is_field: bool) -> Validator:
        kind = definition.type
        if kind not in PRIMITIVE_KINDS:
            logger.debug("Unknown schema kind '%s' on '%s', accepting any value", kind, definition.name)
            return ANY
        if kind in ("string", "text"):
            return string_validator()
        if kind == "url":
            return url_validator()
        if kind == "datetime":
            return datetime_validator()
        if kind == "date":
            return date_validator()
        if kind == "number":
            return number_validator()
        if kind == "boolean":
            return boolean_validator()
        if kind == "slug":
            return slug_validator()
        if kind == "reference":
            self._check_reference_targets(definition)
            return reference_validator(normalize=is_field)
        if kind in ("image", "file"):
            return asset_validator(kind)
        if kind == "block":
            return block_validator()
        return ANY

    def _check_reference_targets(self, definition: ManifestType) -> None:
        for target in definition.to or []:
            if target.type not in self._by_name:
                raise SchemaConfigError(
                    f"Reference '{definition.name}' targets undefined type '{target.type}'",
                    type_name=target.type,
                    details={"field": definition.name},
                )


def compile_schema(manifests: Iterable[Any]) -> CompiledSchema:
    """Compile a manifest set into validators keyed by type name."""
    return SchemaGraphCompiler(manifests).compile()

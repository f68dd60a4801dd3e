"""Human and agent readable summaries of a manifest set."""

from __future__ import annotations

from typing import Any

from ..exceptions import SchemaConfigError
from ..models import SchemaOverview
from ..models import TypeSummary
from .manifest import ManifestType
from .manifest import TypeManifest

HIDDEN_TYPE_PREFIXES = ("sanity.", "assist.")


def _is_hidden(manifest: ManifestType) -> bool:
    return any(
        (manifest.type or "").startswith(prefix) or (manifest.name or "").startswith(prefix)
        for prefix in HIDDEN_TYPE_PREFIXES
    )


def describe_type(manifest: ManifestType) -> str:
    """One-line description, e.g. ``Document type with 3 fields``."""
    if manifest.type == "document":
        parts = ["Document type"]
    elif manifest.type == "object":
        parts = ["Object type"]
    elif manifest.type == "array":
        members = ", ".join(member.type for member in manifest.of or [])
        parts = [f"Array of [{members or 'unknown'}]"]
    else:
        parts = [f"{manifest.type} type"]

    field_count = len(manifest.fields or [])
    if field_count:
        parts.append(f"with {field_count} field{'' if field_count == 1 else 's'}")

    if manifest.deprecated:
        parts.append(f"(DEPRECATED) - {manifest.deprecated.get('reason', 'no reason given')}")
    return " ".join(parts)


def type_details(manifest: ManifestType) -> dict[str, Any]:
    """Nested plain-dict description of a type, its fields, members and reference targets."""
    result: dict[str, Any] = {"type": manifest.type}
    if manifest.name:
        result["name"] = manifest.name
    if manifest.title:
        result["title"] = manifest.title
    if manifest.description:
        result["description"] = manifest.description
    if manifest.deprecated:
        result["deprecated"] = {"reason": manifest.deprecated.get("reason")}
    if manifest.fields:
        result["fields"] = [type_details(member) for member in manifest.fields]
    if manifest.of:
        result["of"] = [type_details(member) for member in manifest.of]
    if manifest.to:
        result["to"] = [type_details(member) for member in manifest.to]
    if manifest.options:
        result["options"] = manifest.options
    return result


def generate_schema_overview(
    manifests: list[TypeManifest], lite: bool = True, schema_id: str | None = None
) -> SchemaOverview:
    visible = [manifest for manifest in manifests if not _is_hidden(manifest)]
    summaries = [
        TypeSummary(
            name=manifest.name,
            type=manifest.type,
            title=manifest.title,
            fields_count=len(manifest.fields or []),
            description=describe_type(manifest),
        )
        for manifest in visible
    ]
    return SchemaOverview(
        schema_id=schema_id,
        total_types=len(visible),
        types=summaries,
        details=None if lite else [type_details(manifest) for manifest in visible],
    )


def get_type_manifest(manifests: list[TypeManifest], type_name: str) -> TypeManifest:
    for manifest in manifests:
        if manifest.name == type_name:
            return manifest
    raise SchemaConfigError(f'Type "{type_name}" not found in schema', type_name=type_name)

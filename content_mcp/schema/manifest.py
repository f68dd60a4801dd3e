"""Pydantic models for schema manifests.

A manifest set is a flat list of named type definitions. Fields and array
members are themselves (possibly anonymous) type definitions whose ``type``
is either a primitive kind or the name of another manifest.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class ManifestType(BaseModel):
    """A type definition as it appears inline (field, array member, reference target)."""

    model_config = ConfigDict(extra="allow")

    type: str
    name: str | None = None
    title: str | None = None
    description: str | None = None
    fields: list[ManifestType] | None = None
    of: list[ManifestType] | None = None
    to: list[ManifestType] | None = None
    deprecated: dict[str, Any] | None = None
    options: dict[str, Any] | None = None


class TypeManifest(ManifestType):
    """A top-level, named entry of the manifest set."""

    name: str = Field(..., min_length=1)


DOCUMENT_KIND = "document"
OBJECT_KIND = "object"
ARRAY_KIND = "array"

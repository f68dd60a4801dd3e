"""Schema manifests, validator compilation and schema overviews."""

from .cache import ValidatorCache
from .compiler import CompiledSchema
from .compiler import SchemaGraphCompiler
from .compiler import compile_schema
from .manifest import ManifestType
from .manifest import TypeManifest
from .overview import generate_schema_overview
from .overview import get_type_manifest
from .source import DEFAULT_SCHEMA_ID
from .source import fetch_schema_manifests
from .validators import Validator

__all__ = [
    "CompiledSchema",
    "DEFAULT_SCHEMA_ID",
    "ManifestType",
    "SchemaGraphCompiler",
    "TypeManifest",
    "Validator",
    "ValidatorCache",
    "compile_schema",
    "fetch_schema_manifests",
    "generate_schema_overview",
    "get_type_manifest",
]

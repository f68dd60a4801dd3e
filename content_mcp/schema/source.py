"""Manifest source: reads deployed schema manifests out of the dataset.

A deployed schema is a document whose ``_id`` is the schema id and whose
``schema`` attribute holds the manifest list serialized as a JSON string.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..exceptions import SchemaConfigError
from ..exceptions import SchemaNotFoundError
from ..store.base import StoreClient

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_ID = "sanity.workspace.schema.default"
SCHEMA_DOCUMENT_TYPE = "sanity.workspace.schema"

SCHEMA_BY_ID_QUERY = "*[_id == $schemaId][0]"
SCHEMA_IDS_QUERY = '*[_type == "sanity.workspace.schema"]{ _id }'


async def fetch_schema_manifests(store: StoreClient, schema_id: str = DEFAULT_SCHEMA_ID) -> list[dict[str, Any]]:
    """Fetch and decode the manifest list deployed under ``schema_id``.

    Raises:
        SchemaConfigError: The schema document is missing, has no ``schema``
            attribute, or the attribute is not a JSON list.
        StoreError: The store could not be queried.
    """
    document = await store.run_query(SCHEMA_BY_ID_QUERY, {"schemaId": schema_id})
    if not isinstance(document, dict) or not document.get("schema"):
        raise SchemaNotFoundError(schema_id)

    raw = document["schema"]
    if isinstance(raw, str):
        try:
            manifests = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SchemaConfigError(
                f"Schema '{schema_id}' is not valid JSON: {e}", details={"schema_id": schema_id}
            ) from e
    else:
        manifests = raw

    if not isinstance(manifests, list):
        raise SchemaConfigError(
            f"Schema '{schema_id}' must be a list of type manifests", details={"schema_id": schema_id}
        )
    logger.debug("Loaded %d manifests from schema '%s'", len(manifests), schema_id)
    return manifests


async def list_schema_ids(store: StoreClient) -> list[str]:
    rows = await store.run_query(SCHEMA_IDS_QUERY)
    return [row["_id"] for row in rows or [] if isinstance(row, dict) and "_id" in row]

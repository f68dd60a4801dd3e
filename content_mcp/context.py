"""Server context shared by every tool module.

Holds the settings, the store client and the compiled-schema cache. It is
created once by the server and passed explicitly to tool registration, so
tests can build one around an in-memory store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field

from .config.settings import Settings
from .config.settings import get_settings
from .exceptions import SchemaNotFoundError
from .schema.cache import ValidatorCache
from .schema.compiler import CompiledSchema
from .schema.source import fetch_schema_manifests
from .store.base import StoreClient
from .store.factory import create_store_client

logger = logging.getLogger(__name__)


@dataclass
class ServerContext:
    settings: Settings
    store: StoreClient
    validator_cache: ValidatorCache = field(default_factory=ValidatorCache)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ServerContext:
        settings = settings or get_settings()
        return cls(settings=settings, store=create_store_client(settings))

    def cache_key(self, schema_id: str) -> tuple[str, str, str]:
        return (self.store.project_id, self.store.dataset, schema_id)

    async def get_schema(self, schema_id: str | None = None, refresh: bool = False) -> CompiledSchema:
        """Compiled schema for ``schema_id``, fetched and compiled on first use.

        Raises:
            SchemaConfigError: The schema is missing or cannot be compiled.
            StoreError: The manifests could not be fetched.
        """
        schema_id = schema_id or self.settings.default_schema_id
        key = self.cache_key(schema_id)
        if refresh:
            self.validator_cache.invalidate(key)
        cached = self.validator_cache.get(key)
        if cached is not None:
            return cached

        manifests = await fetch_schema_manifests(self.store, schema_id)
        return self.validator_cache.get_or_compile(key, manifests)

    async def get_schema_if_deployed(self, schema_id: str | None = None) -> CompiledSchema | None:
        """Like ``get_schema`` but returns None when no schema is deployed, so writes go unvalidated."""
        try:
            return await self.get_schema(schema_id)
        except SchemaNotFoundError as e:
            logger.warning("%s Documents will not be validated.", e.message)
            return None

    async def close(self) -> None:
        await self.store.close()

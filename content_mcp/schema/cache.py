"""Process-wide registry of compiled schemas.

Entries are keyed by (project, dataset, schema id) and are read-only once
built, so concurrent requests can share them. The registry is an explicit
object owned by the server context; tests create their own.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from collections.abc import Iterable
from typing import Any

from .compiler import CompiledSchema
from .compiler import compile_schema

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]


class ValidatorCache:
    """Build-once cache of ``CompiledSchema`` objects."""

    def __init__(self, compiler: Callable[[Iterable[Any]], CompiledSchema] = compile_schema):
        self._compiler = compiler
        self._entries: dict[CacheKey, CompiledSchema] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> CompiledSchema | None:
        return self._entries.get(key)

    def get_or_compile(self, key: CacheKey, manifests: Iterable[Any]) -> CompiledSchema:
        """Return the cached schema for ``key``, compiling ``manifests`` on first use."""
        cached = self._entries.get(key)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                logger.info("Compiling schema for %s", "/".join(key))
                cached = self._compiler(manifests)
                self._entries[key] = cached
        return cached

    def invalidate(self, key: CacheKey) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

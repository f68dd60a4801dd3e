"""Content Store Factory.

Selects the store backend from settings:
- HTTP: when STORE_BACKEND=http, or a project id is configured in auto mode
- Memory: default for development and testing
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config.settings import Settings
    from .base import StoreClient

logger = logging.getLogger(__name__)


class StoreType(Enum):
    """Available store backend types."""

    HTTP = "http"
    MEMORY = "memory"


def detect_store_type(settings: Settings) -> StoreType:
    """Resolve ``store_backend`` (auto, http or memory) to a concrete backend."""
    return StoreType(settings.store_type)


def create_store_client(settings: Settings, store_type: StoreType | None = None) -> StoreClient:
    """Create a store client instance.

    Args:
        settings: Connection details and backend selection
        store_type: Explicit backend, or None to detect from settings

    Returns:
        Configured StoreClient instance
    """
    if store_type is None:
        store_type = detect_store_type(settings)

    if store_type == StoreType.HTTP:
        from .http import HttpStoreClient

        logger.info("Using HTTP store for project %s, dataset %s", settings.store_project_id, settings.store_dataset)
        return HttpStoreClient.from_settings(settings)

    from .memory import InMemoryStoreClient

    logger.info("Using in-memory store for dataset %s", settings.store_dataset)
    return InMemoryStoreClient(project_id=settings.store_project_id or "local", dataset=settings.store_dataset)


def get_store_info(store: StoreClient) -> dict:
    """Describe the active store for debugging/monitoring."""
    return {"store_type": store.store_type, "project_id": store.project_id, "dataset": store.dataset}

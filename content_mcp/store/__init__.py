"""Content Store Clients for Content MCP.

Provides one interface over the remote HTTP data API and an in-memory
store used for local development and tests.

Usage:
    from content_mcp.store import create_store_client

    store = create_store_client(get_settings())
    document = await store.fetch_document("post-1")
"""

from .base import CommitResult
from .base import StoreClient
from .factory import StoreType
from .factory import create_store_client
from .memory import InMemoryStoreClient

__all__ = ["CommitResult", "InMemoryStoreClient", "StoreClient", "StoreType", "create_store_client"]

"""The pytest configuration for Content MCP testing.

Provides an in-memory store, a sample manifest set and a fake MCP server
that records registered tools so they can be called directly.
"""

import json
import os

import pytest

os.environ.setdefault("MCP_METRICS_ENABLED", "false")

from content_mcp.config import Settings  # noqa: E402
from content_mcp.config import reset_settings  # noqa: E402
from content_mcp.context import ServerContext  # noqa: E402
from content_mcp.schema.cache import ValidatorCache  # noqa: E402
from content_mcp.schema.source import DEFAULT_SCHEMA_ID  # noqa: E402
from content_mcp.schema.source import SCHEMA_DOCUMENT_TYPE  # noqa: E402
from content_mcp.store.memory import InMemoryStoreClient  # noqa: E402

ARTICLE_MANIFESTS = [
    {
        "name": "article",
        "type": "document",
        "title": "Article",
        "fields": [
            {"name": "title", "type": "string"},
            {"name": "views", "type": "number"},
            {"name": "published", "type": "boolean"},
            {"name": "publishedAt", "type": "datetime"},
            {"name": "slug", "type": "slug"},
            {"name": "author", "type": "reference", "to": [{"type": "author"}]},
            {"name": "tags", "type": "array", "of": [{"type": "string"}]},
            {"name": "body", "type": "array", "of": [{"type": "block"}]},
        ],
    },
    {
        "name": "author",
        "type": "document",
        "title": "Author",
        "fields": [
            {"name": "name", "type": "string"},
            {"name": "website", "type": "url"},
            {"name": "photo", "type": "image"},
        ],
    },
    {
        "name": "category",
        "type": "document",
        "fields": [
            {"name": "title", "type": "string"},
            {"name": "parent", "type": "reference", "to": [{"type": "category"}]},
            {"name": "tree", "type": "treeNode"},
        ],
    },
    {
        "name": "treeNode",
        "type": "object",
        "fields": [
            {"name": "label", "type": "string"},
            {"name": "children", "type": "array", "of": [{"type": "treeNode"}]},
        ],
    },
    {
        "name": "sanity.imageAsset",
        "type": "document",
        "fields": [{"name": "url", "type": "string"}],
    },
]


class RecordingMCPServer:
    """Stand-in for FastMCP: ``tool()`` records the decorated function by name."""

    def __init__(self):
        self.tools = {}

    def tool(self, *args, **kwargs):
        def decorator(func):
            self.tools[func.__name__] = func
            return func

        return decorator


def schema_document(manifests, schema_id=DEFAULT_SCHEMA_ID):
    return {"_id": schema_id, "_type": SCHEMA_DOCUMENT_TYPE, "schema": json.dumps(manifests)}


@pytest.fixture(autouse=True)
def clean_settings():
    """Reset the settings singleton around every test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def sample_manifests():
    """A fresh copy of the article/author/category manifest set."""
    return json.loads(json.dumps(ARTICLE_MANIFESTS))


@pytest.fixture
def memory_store():
    """An empty in-memory store."""
    return InMemoryStoreClient(project_id="test-project", dataset="test")


@pytest.fixture
def schema_store(sample_manifests):
    """An in-memory store with the sample schema deployed under the default id."""
    return InMemoryStoreClient(
        project_id="test-project", dataset="test", documents=[schema_document(sample_manifests)]
    )


@pytest.fixture
def test_settings():
    return Settings(store_backend="memory", store_dataset="test", query_page_size=2)


@pytest.fixture
def server_context(schema_store, test_settings):
    """Server context around the schema store with its own validator cache."""
    return ServerContext(settings=test_settings, store=schema_store, validator_cache=ValidatorCache())


@pytest.fixture
def recording_server():
    return RecordingMCPServer()


@pytest.fixture
def make_schema_document():
    """Build the dataset document a schema deploy would write."""
    return schema_document

"""Unit tests for the HTTP store client (requests session mocked)."""

import json

import pytest
import requests

from content_mcp.config import Settings
from content_mcp.exceptions import ConcurrencyConflict
from content_mcp.exceptions import StoreError
from content_mcp.mutations.models import MutationOptions
from content_mcp.store.factory import StoreType
from content_mcp.store.factory import create_store_client
from content_mcp.store.factory import detect_store_type
from content_mcp.store.http import HttpStoreClient
from content_mcp.store.memory import InMemoryStoreClient


def make_response(status_code, body=None, text=""):
    response = requests.Response()
    response.status_code = status_code
    response.url = "https://test.invalid"
    response._content = json.dumps(body).encode("utf-8") if body is not None else text.encode("utf-8")
    return response


@pytest.fixture
def session(mocker):
    session = requests.Session()
    mocker.patch.object(session, "request")
    return session


@pytest.fixture
def client(session):
    return HttpStoreClient(project_id="abc123", dataset="prod", token="secret", session=session)


class TestConfiguration:
    """Tests for URL construction and authentication."""

    def test_urls(self, client):
        assert client.base_url == "https://abc123.api.sanity.io/v2025-02-19"
        assert client.mutate_url == "https://abc123.api.sanity.io/v2025-02-19/data/mutate/prod"

    def test_cdn_reads_live_writes(self, session):
        client = HttpStoreClient(project_id="abc123", use_cdn=True, api_version="v2024-01-01", session=session)
        assert client.base_url == "https://abc123.apicdn.sanity.io/v2024-01-01"
        assert client.mutate_url.startswith("https://abc123.api.sanity.io/v2024-01-01/")

    def test_bearer_token(self, client, session):
        assert session.headers["Authorization"] == "Bearer secret"

    def test_project_required(self):
        with pytest.raises(StoreError):
            HttpStoreClient(project_id="")

    def test_identity(self, client):
        assert client.store_type == "http"
        assert client.project_id == "abc123"
        assert client.dataset == "prod"

    def test_from_settings(self):
        settings = Settings(store_project_id="p1", store_dataset="staging", store_timeout=5)
        client = HttpStoreClient.from_settings(settings)
        assert client.dataset == "staging"
        assert client.timeout == 5


class TestReads:
    """Tests for document fetches and queries."""

    @pytest.mark.asyncio
    async def test_fetch_document(self, client, session):
        session.request.return_value = make_response(200, {"documents": [{"_id": "a", "_type": "post"}]})
        document = await client.fetch_document("a")

        assert document == {"_id": "a", "_type": "post"}
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://abc123.api.sanity.io/v2025-02-19/data/doc/prod/a"

    @pytest.mark.asyncio
    async def test_fetch_missing_document(self, client, session):
        session.request.return_value = make_response(200, {"documents": []})
        assert await client.fetch_document("a") is None

        session.request.return_value = make_response(404, {"error": {"description": "not found"}})
        assert await client.fetch_document("a") is None

    @pytest.mark.asyncio
    async def test_fetch_error(self, client, session):
        session.request.return_value = make_response(500, {"error": {"description": "boom"}})
        with pytest.raises(StoreError) as exc_info:
            await client.fetch_document("a")
        assert exc_info.value.status_code == 500
        assert exc_info.value.failure_reason == "boom"
        assert exc_info.value.details["document_id"] == "a"

    @pytest.mark.asyncio
    async def test_run_query(self, client, session):
        session.request.return_value = make_response(200, {"result": [{"_id": "a"}], "ms": 3})
        rows = await client.run_query("*[_type == $t]", {"t": "post"})

        assert rows == [{"_id": "a"}]
        assert session.request.call_args.kwargs["json"] == {"query": "*[_type == $t]", "params": {"t": "post"}}
        assert session.request.call_args.kwargs["timeout"] == 30.0

    @pytest.mark.asyncio
    async def test_query_error_uses_message(self, client, session):
        session.request.return_value = make_response(400, {"message": "parse error"})
        with pytest.raises(StoreError) as exc_info:
            await client.run_query("*[")
        assert exc_info.value.failure_reason == "parse error"

    @pytest.mark.asyncio
    async def test_non_json_error(self, client, session):
        session.request.return_value = make_response(502, text="Bad Gateway")
        with pytest.raises(StoreError) as exc_info:
            await client.run_query("*")
        assert exc_info.value.failure_reason == "Bad Gateway"

    @pytest.mark.asyncio
    async def test_network_failure(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(StoreError) as exc_info:
            await client.run_query("*")
        assert "ConnectionError" in exc_info.value.failure_reason


class TestCommit:
    """Tests for the mutate endpoint."""

    @pytest.mark.asyncio
    async def test_commit(self, client, session):
        session.request.return_value = make_response(
            200, {"transactionId": "tx1", "results": [{"id": "a", "operation": "create"}]}
        )
        mutations = [{"create": {"_id": "a", "_type": "post"}}]
        result = await client.commit_transaction(mutations, MutationOptions(visibility="async", dry_run=True))

        assert result.transaction_id == "tx1"
        assert result.document_ids == ["a"]
        kwargs = session.request.call_args.kwargs
        assert kwargs["json"] == {"mutations": mutations}
        assert kwargs["params"] == {"returnIds": "true", "visibility": "async", "dryRun": "true"}
        assert session.request.call_args.args == ("POST", client.mutate_url)

    @pytest.mark.asyncio
    async def test_revision_mismatch_is_conflict(self, client, session):
        session.request.return_value = make_response(
            409,
            {"error": {"description": 'Document "b" has unexpected revision ID ("r9"), expected "r1"'}},
        )
        mutations = [
            {"patch": {"id": "a", "ifRevisionID": "r0", "set": {"x": 1}}},
            {"patch": {"id": "b", "ifRevisionID": "r1", "set": {"x": 1}}},
        ]
        with pytest.raises(ConcurrencyConflict) as exc_info:
            await client.commit_transaction(mutations, MutationOptions())
        assert exc_info.value.document_id == "b"
        assert exc_info.value.expected_revision == "r1"

    @pytest.mark.asyncio
    async def test_other_conflict_is_store_error(self, client, session):
        session.request.return_value = make_response(
            409, {"error": {"description": 'Document by ID "a" already exists'}}
        )
        with pytest.raises(StoreError) as exc_info:
            await client.commit_transaction([{"create": {"_id": "a", "_type": "t"}}], MutationOptions())
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_close(self, client, session, mocker):
        close = mocker.patch.object(session, "close")
        await client.close()
        close.assert_called_once()


class TestStoreFactory:
    """Tests for backend selection."""

    def test_auto_without_project_is_memory(self):
        settings = Settings(store_backend="auto", store_project_id=None)
        assert detect_store_type(settings) == StoreType.MEMORY
        assert isinstance(create_store_client(settings), InMemoryStoreClient)

    def test_auto_with_project_is_http(self):
        settings = Settings(store_backend="auto", store_project_id="p1")
        assert detect_store_type(settings) == StoreType.HTTP
        assert isinstance(create_store_client(settings), HttpStoreClient)

    def test_explicit_memory_wins(self):
        settings = Settings(store_backend="memory", store_project_id="p1")
        client = create_store_client(settings)
        assert isinstance(client, InMemoryStoreClient)
        assert client.project_id == "p1"

    def test_explicit_type_argument(self):
        settings = Settings(store_backend="auto", store_project_id=None)
        assert isinstance(create_store_client(settings, StoreType.MEMORY), InMemoryStoreClient)

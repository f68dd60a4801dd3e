"""Unit tests for the in-memory store and its patch application."""

import pytest

from content_mcp.exceptions import ConcurrencyConflict
from content_mcp.exceptions import StoreError
from content_mcp.mutations.models import MutationOptions
from content_mcp.store.memory import InMemoryStoreClient
from content_mcp.store.memory import ParsedQuery
from content_mcp.store.patching import apply_patch
from content_mcp.store.patching import ensure_array_keys

POSTS = [
    {"_id": "post-1", "_type": "post", "status": "published", "views": 10, "tags": ["a"]},
    {"_id": "post-2", "_type": "post", "status": "draft"},
    {"_id": "author-1", "_type": "author", "name": "Ada"},
]


@pytest.fixture
def store():
    return InMemoryStoreClient(documents=POSTS)


def ids(rows):
    return [row["_id"] for row in rows]


class TestQuerySubset:
    """Tests for the supported query subset."""

    def test_equality_filter(self):
        assert ids(ParsedQuery('*[_type == "post"]').run(POSTS)) == ["post-1", "post-2"]

    def test_single_quoted_literal(self):
        assert ids(ParsedQuery("*[_type == 'author']").run(POSTS)) == ["author-1"]

    def test_inequality_with_param(self):
        rows = ParsedQuery('*[_type == "post" && status != $status]', {"status": "draft"}).run(POSTS)
        assert ids(rows) == ["post-1"]

    def test_in_array(self):
        rows = ParsedQuery('*[_id in ["post-2", "author-1"]]').run(POSTS)
        assert ids(rows) == ["post-2", "author-1"]

    def test_defined(self):
        assert ids(ParsedQuery("*[defined(views)]").run(POSTS)) == ["post-1"]

    def test_single_index(self):
        assert ParsedQuery('*[_type == "post"][1]').run(POSTS)["_id"] == "post-2"
        assert ParsedQuery('*[_type == "post"][5]').run(POSTS) is None

    def test_exclusive_and_inclusive_slices(self):
        assert len(ParsedQuery('*[_type == "post"][0...1]').run(POSTS)) == 1
        assert len(ParsedQuery('*[_type == "post"][0..1]').run(POSTS)) == 2

    def test_slice_without_filter(self):
        assert len(ParsedQuery("*[0...2]").run(POSTS)) == 2

    def test_projection(self):
        rows = ParsedQuery('*[_type == "post"]{_id, views}').run(POSTS)
        assert rows == [{"_id": "post-1", "views": 10}, {"_id": "post-2"}]

    def test_spread_projection(self):
        rows = ParsedQuery('*[_id == "author-1"]{...}').run(POSTS)
        assert rows == [POSTS[2]]

    def test_results_are_copies(self):
        rows = ParsedQuery('*[_id == "post-1"]').run(POSTS)
        rows[0]["tags"].append("b")
        assert POSTS[0]["tags"] == ["a"]

    def test_missing_param(self):
        with pytest.raises(StoreError):
            ParsedQuery("*[_id == $id]", {})

    @pytest.mark.parametrize("query", ["count(*)", '*[title match "x"]', "*[_type == post]", '*[_type == "post"'])
    def test_unsupported_queries(self, query):
        with pytest.raises(StoreError):
            ParsedQuery(query)


class TestPatchApplication:
    """Tests for apply_patch on plain documents."""

    def test_set_creates_intermediate_objects(self):
        result = apply_patch({"_id": "a"}, {"set": {"meta.seo.title": "x"}})
        assert result["meta"] == {"seo": {"title": "x"}}

    def test_set_if_missing(self):
        result = apply_patch({"title": "keep"}, {"setIfMissing": {"title": "new", "tags": []}})
        assert result == {"title": "keep", "tags": []}

    def test_set_then_inc_order(self):
        """set runs before inc whatever the dictionary order."""
        result = apply_patch({"views": 1}, {"inc": {"views": 2}, "set": {"views": 10}})
        assert result["views"] == 12

    def test_unset_keyed_element(self):
        doc = {"body": [{"_key": "a"}, {"_key": "b"}]}
        result = apply_patch(doc, {"unset": ['body[_key=="a"]']})
        assert result["body"] == [{"_key": "b"}]

    def test_dec_and_missing_field(self):
        result = apply_patch({"stock": 5}, {"dec": {"stock": 2, "missing": 1}})
        assert result == {"stock": 3}

    def test_inc_non_number(self):
        with pytest.raises(StoreError):
            apply_patch({"title": "x"}, {"inc": {"title": 1}})

    @pytest.mark.parametrize(
        "insert, expected",
        [
            ({"before": "tags[0]", "items": ["z"]}, ["z", "a", "b"]),
            ({"after": "tags[-1]", "items": ["z"]}, ["a", "b", "z"]),
            ({"replace": "tags[0]", "items": ["y", "z"]}, ["y", "z", "b"]),
        ],
    )
    def test_insert_positions(self, insert, expected):
        assert apply_patch({"tags": ["a", "b"]}, {"insert": insert})["tags"] == expected

    def test_insert_into_empty_array(self):
        assert apply_patch({"tags": []}, {"insert": {"after": "tags[-1]", "items": ["x"]}})["tags"] == ["x"]

    def test_unmatched_selector_is_noop(self):
        doc = {"body": [{"_key": "a"}]}
        assert apply_patch(doc, {"insert": {"after": 'body[_key=="zz"]', "items": [{}]}}) == doc

    def test_original_untouched(self):
        doc = {"tags": ["a"]}
        apply_patch(doc, {"set": {"tags[0]": "b"}})
        assert doc == {"tags": ["a"]}

    def test_diff_match_patch_unsupported(self):
        with pytest.raises(StoreError):
            apply_patch({"body": "x"}, {"diffMatchPatch": {"body": "@@"}})

    def test_ensure_array_keys(self):
        doc = ensure_array_keys({"body": [{"text": "a"}, {"_key": "k", "children": [{"text": "b"}]}], "tags": ["x"]})
        assert doc["body"][0]["_key"]
        assert doc["body"][1]["_key"] == "k"
        assert doc["body"][1]["children"][0]["_key"]
        assert doc["tags"] == ["x"]


class TestInMemoryStoreClient:
    """Tests for commits, revision guards and reads."""

    def test_seed_sets_system_fields(self, store):
        stored = store.documents["post-1"]
        assert stored["_rev"]
        assert stored["_createdAt"] == stored["_updatedAt"]

    @pytest.mark.asyncio
    async def test_identity(self, store):
        assert store.store_type == "memory"
        assert store.project_id == "local"
        assert store.dataset == "production"

    @pytest.mark.asyncio
    async def test_fetch_document(self, store):
        assert (await store.fetch_document("post-1"))["views"] == 10
        assert await store.fetch_document("missing") is None

    @pytest.mark.asyncio
    async def test_create_and_replace(self, store):
        result = await store.commit_transaction([{"create": {"_id": "new", "_type": "post"}}], MutationOptions())
        assert result.results == [{"id": "new", "operation": "create"}]
        assert result.document_ids == ["new"]

        created_at = store.documents["new"]["_createdAt"]
        result = await store.commit_transaction(
            [{"createOrReplace": {"_id": "new", "_type": "post", "title": "t"}}], MutationOptions()
        )
        assert result.results[0]["operation"] == "update"
        assert store.documents["new"]["_createdAt"] == created_at
        assert store.documents["new"]["title"] == "t"

    @pytest.mark.asyncio
    async def test_create_if_not_exists_keeps_existing(self, store):
        result = await store.commit_transaction(
            [{"createIfNotExists": {"_id": "post-1", "_type": "post"}}], MutationOptions()
        )
        assert result.results == [{"id": "post-1", "operation": "none"}]
        assert store.documents["post-1"]["views"] == 10

    @pytest.mark.asyncio
    async def test_duplicate_create_is_atomic(self, store):
        mutations = [
            {"create": {"_id": "fresh", "_type": "post"}},
            {"create": {"_id": "post-1", "_type": "post"}},
        ]
        with pytest.raises(StoreError) as exc_info:
            await store.commit_transaction(mutations, MutationOptions())
        assert exc_info.value.status_code == 409
        assert exc_info.value.details["mutation_index"] == 1
        assert "fresh" not in store.documents

    @pytest.mark.asyncio
    async def test_patch_bumps_revision(self, store):
        before = store.documents["post-1"]["_rev"]
        await store.commit_transaction([{"patch": {"id": "post-1", "inc": {"views": 1}}}], MutationOptions())
        after = store.documents["post-1"]
        assert after["views"] == 11
        assert after["_rev"] != before

    @pytest.mark.asyncio
    async def test_revision_guard(self, store):
        current = store.documents["post-1"]["_rev"]
        await store.commit_transaction(
            [{"patch": {"id": "post-1", "ifRevisionID": current, "set": {"status": "x"}}}], MutationOptions()
        )
        with pytest.raises(ConcurrencyConflict) as exc_info:
            await store.commit_transaction(
                [{"patch": {"id": "post-1", "ifRevisionID": current, "set": {"status": "y"}}}], MutationOptions()
            )
        assert exc_info.value.expected_revision == current
        assert store.documents["post-1"]["status"] == "x"

    @pytest.mark.asyncio
    async def test_patch_missing_document(self, store):
        with pytest.raises(StoreError) as exc_info:
            await store.commit_transaction([{"patch": {"id": "nope", "set": {"x": 1}}}], MutationOptions())
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_query_targets(self, store):
        result = await store.commit_transaction(
            [{"patch": {"query": "*[_type == $t]", "params": {"t": "post"}, "set": {"reviewed": True}}}],
            MutationOptions(),
        )
        assert sorted(r["id"] for r in result.results) == ["post-1", "post-2"]

        result = await store.commit_transaction([{"delete": {"query": '*[_type == "post"]'}}], MutationOptions())
        assert len(result.results) == 2
        assert list(store.documents) == ["author-1"]

    @pytest.mark.asyncio
    async def test_dry_run_changes_nothing(self, store):
        options = MutationOptions(dry_run=True)
        result = await store.commit_transaction([{"delete": {"id": "post-1"}}], options)
        assert result.results == [{"id": "post-1", "operation": "delete"}]
        assert "post-1" in store.documents

    @pytest.mark.asyncio
    async def test_transaction_id_passed_through(self, store):
        result = await store.commit_transaction(
            [{"delete": {"id": "post-2"}}], MutationOptions(transaction_id="tx-1")
        )
        assert result.transaction_id == "tx-1"

    @pytest.mark.asyncio
    async def test_auto_generate_array_keys(self, store):
        await store.commit_transaction(
            [{"create": {"_id": "k", "_type": "post", "body": [{"text": "a"}]}}],
            MutationOptions(auto_generate_array_keys=True),
        )
        assert store.documents["k"]["body"][0]["_key"]

    @pytest.mark.asyncio
    async def test_unknown_verb(self, store):
        with pytest.raises(StoreError):
            await store.commit_transaction([{"upsert": {}}], MutationOptions())

    @pytest.mark.asyncio
    async def test_run_query(self, store):
        rows = await store.run_query("*[_type == $t]{_id}", {"t": "author"})
        assert rows == [{"_id": "author-1"}]

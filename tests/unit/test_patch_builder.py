"""Unit tests for the patch operation builder."""

import pytest

from content_mcp.exceptions import PathSyntaxError
from content_mcp.exceptions import ValidationError
from content_mcp.mutations.models import PATCH_VERB_ORDER
from content_mcp.mutations.models import PatchOperations
from content_mcp.mutations.patch import build_patch
from content_mcp.mutations.patch import build_target
from content_mcp.mutations.patch import check_query_params
from content_mcp.mutations.patch import query_requires_params


class TestVerbOrdering:
    """Verbs come out in the fixed application order."""

    def test_caller_order_is_ignored(self):
        unit = build_patch(
            {"id": "a"},
            {"insert": {"after": "tags[-1]", "items": ["x"]}, "inc": {"views": 1}, "unset": ["old"], "set": {"title": "t"}},
        )
        assert unit.verbs == ["set", "unset", "inc", "insert"]

    def test_every_verb(self):
        unit = build_patch(
            {"id": "a"},
            {
                "diffMatchPatch": {"body": "@@ -1 +1 @@"},
                "dec": {"stock": 2},
                "inc": {"views": 1},
                "insert": {"before": "tags[0]", "items": ["first"]},
                "unset": "legacy",
                "setIfMissing": {"tags": []},
                "set": {"title": "t"},
            },
        )
        assert tuple(unit.verbs) == PATCH_VERB_ORDER

    def test_aliases_map_to_wire_names(self):
        unit = build_patch(
            {"id": "a"},
            {"textDiffPatch": {"body": "@@"}, "decrement": {"stock": 1}, "increment": {"views": 2}},
        )
        assert unit.verbs == ["inc", "dec", "diffMatchPatch"]
        assert unit.operation("inc").value == {"views": 2}

    def test_accepts_parsed_operations(self):
        operations = PatchOperations(set={"title": "x"})
        assert build_patch({"id": "a"}, operations).verbs == ["set"]

    def test_empty_operations_give_empty_unit(self):
        unit = build_patch({"id": "a"}, {})
        assert unit.operations == ()
        assert unit.to_mutation() == {"patch": {"id": "a"}}

    def test_unknown_verb_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            build_patch({"id": "a"}, {"append": {"tags": ["x"]}})
        assert exc_info.value.field == "append"


class TestFieldPaths:
    """Every field path is parsed and written in canonical form."""

    def test_paths_are_canonicalized(self):
        unit = build_patch({"id": "a"}, {"set": {"body[_key=='k1'].text": "hi", "meta['seo']": {}}})
        assert unit.operation("set").value == {'body[_key=="k1"].text': "hi", "meta.seo": {}}

    def test_unset_single_string(self):
        unit = build_patch({"id": "a"}, {"unset": "tags[0]"})
        assert unit.operation("unset").value == ["tags[0]"]

    def test_duplicate_canonical_paths_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            build_patch({"id": "a"}, {"set": {"a.b": 1, "a['b']": 2}})
        assert exc_info.value.field == "a.b"

    def test_malformed_path_rejected(self):
        with pytest.raises(PathSyntaxError):
            build_patch({"id": "a"}, {"set": {"tags[": 1}})

    def test_range_cannot_be_written(self):
        with pytest.raises(PathSyntaxError):
            build_patch({"id": "a"}, {"unset": ["tags[0:2]"]})

    @pytest.mark.parametrize("amount", ["1", True, None, [1]])
    def test_inc_dec_need_numbers(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            build_patch({"id": "a"}, {"inc": {"views": amount}})
        assert exc_info.value.expected == "number"

    def test_float_amounts_allowed(self):
        unit = build_patch({"id": "a"}, {"dec": {"price": 0.5}})
        assert unit.operation("dec").value == {"price": 0.5}


class TestInsertResolution:
    """Insert accepts a modern selector key or a legacy at/position pair."""

    def test_modern_after(self):
        unit = build_patch({"id": "a"}, {"insert": {"after": "tags[-1]", "items": ["x", "y"]}})
        assert unit.operation("insert").to_wire() == {"after": "tags[-1]", "items": ["x", "y"]}

    def test_modern_with_matching_position(self):
        unit = build_patch({"id": "a"}, {"insert": {"replace": "tags[0]", "position": "replace", "items": ["x"]}})
        assert unit.operation("insert").value.position == "replace"

    def test_single_item_is_wrapped(self):
        unit = build_patch({"id": "a"}, {"insert": {"before": "tags[0]", "items": "x"}})
        assert unit.operation("insert").value.items == ["x"]

    def test_selector_is_canonicalized(self):
        unit = build_patch({"id": "a"}, {"insert": {"after": "body[_key=='k']", "items": [{}]}})
        assert unit.operation("insert").to_wire()["after"] == 'body[_key=="k"]'

    def test_legacy_form(self):
        unit = build_patch({"id": "a"}, {"insert": {"at": "tags[0]", "position": "before", "items": [1]}})
        assert unit.operation("insert").to_wire() == {"before": "tags[0]", "items": [1]}

    def test_legacy_without_position_is_dropped(self):
        unit = build_patch({"id": "a"}, {"insert": {"at": "tags[0]", "items": [1]}, "set": {"x": 1}})
        assert unit.verbs == ["set"]

    def test_missing_selector_is_dropped(self):
        assert build_patch({"id": "a"}, {"insert": {"items": [1]}}).verbs == []

    @pytest.mark.parametrize("items", [None, []])
    def test_no_items_is_dropped(self, items):
        assert build_patch({"id": "a"}, {"insert": {"after": "tags[0]", "items": items}}).verbs == []

    def test_modern_and_legacy_conflict(self):
        with pytest.raises(ValidationError):
            build_patch({"id": "a"}, {"insert": {"after": "tags[0]", "at": "tags[1]", "position": "after", "items": [1]}})

    def test_two_modern_keys_conflict(self):
        with pytest.raises(ValidationError):
            build_patch({"id": "a"}, {"insert": {"after": "tags[0]", "before": "tags[1]", "items": [1]}})

    def test_contradicting_position(self):
        with pytest.raises(ValidationError) as exc_info:
            build_patch({"id": "a"}, {"insert": {"after": "tags[0]", "position": "before", "items": [1]}})
        assert exc_info.value.field == "insert.position"

    def test_range_selector_rejected(self):
        with pytest.raises(PathSyntaxError):
            build_patch({"id": "a"}, {"insert": {"after": "tags[0:1]", "items": [1]}})

    def test_unknown_insert_key_rejected(self):
        with pytest.raises(ValidationError):
            build_patch({"id": "a"}, {"insert": {"after": "tags[0]", "items": [1], "where": "end"}})


class TestPatchTarget:
    """Targets are exactly one of a document id or a query."""

    def test_id_with_revision(self):
        unit = build_patch({"id": "a", "ifRevisionID": "rev-1"}, {"set": {"x": 1}})
        assert unit.to_mutation() == {"patch": {"id": "a", "ifRevisionID": "rev-1", "set": {"x": 1}}}

    def test_revision_alias(self):
        assert build_target({"id": "a", "revision": "r"}).if_revision_id == "r"

    def test_query_target(self):
        unit = build_patch({"query": "*[_type == $t]", "params": {"t": "post"}}, {"set": {"x": 1}})
        assert unit.to_mutation() == {
            "patch": {"query": "*[_type == $t]", "params": {"t": "post"}, "set": {"x": 1}}
        }

    @pytest.mark.parametrize("target", [{}, {"id": "a", "query": "*[_type == 'post']"}])
    def test_exactly_one_target(self, target):
        with pytest.raises(ValidationError) as exc_info:
            build_target(target)
        assert exc_info.value.field == "target"

    def test_revision_guard_needs_id(self):
        with pytest.raises(ValidationError):
            build_target({"query": "*[_type == 'post']", "ifRevisionID": "r"})

    def test_params_need_query(self):
        with pytest.raises(ValidationError):
            build_target({"id": "a", "params": {"x": 1}})

    def test_query_params_required(self):
        with pytest.raises(ValidationError) as exc_info:
            build_target({"query": "*[_type == $type]"})
        assert "no params object" in exc_info.value.message

    def test_unknown_target_key_rejected(self):
        with pytest.raises(ValidationError):
            build_target({"id": "a", "dataset": "prod"})


class TestQueryParams:
    """Tests for the $param guard."""

    def test_detects_parameters(self):
        assert query_requires_params("*[_id == $id]")
        assert not query_requires_params("*[_type == 'post']")

    def test_empty_params_object_is_enough(self):
        check_query_params("*[_id == $id]", {})

    def test_no_parameters_no_params_needed(self):
        check_query_params("*[_type == 'post']", None)

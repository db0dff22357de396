"""
Tests for the aggregation pipeline.
"""

import pytest

from docstore.errors import InvalidQuery
from docstore.runtime.aggregation import run_pipeline


@pytest.fixture
def deals():
    return [
        {"_id": "d1", "title": "D1", "value": 10000, "stage": "won", "owner": "ann"},
        {"_id": "d2", "title": "D2", "value": 20000, "stage": "won", "owner": "bob"},
        {"_id": "d3", "title": "D3", "value": 30000, "stage": "lost", "owner": "ann"},
    ]


class TestMatchStage:
    """Tests for $match."""

    def test_match(self, deals):
        result = run_pipeline(deals, [{"$match": {"stage": "won"}}])
        assert [d["_id"] for d in result] == ["d1", "d2"]

    def test_match_with_operators(self, deals):
        result = run_pipeline(deals, [{"$match": {"value": {"$gte": 20000}}}])
        assert len(result) == 2


class TestGroupStage:
    """Tests for $group and its accumulators."""

    def test_match_then_sum(self, deals):
        result = run_pipeline(
            deals,
            [
                {"$match": {"stage": "won"}},
                {"$group": {"_id": None, "total": {"$sum": "$value"}}},
            ],
        )
        assert result == [{"_id": None, "total": 30000}]

    def test_group_by_field_reference(self, deals):
        result = run_pipeline(deals, [{"$group": {"_id": "$stage", "total": {"$sum": "$value"}}}])
        assert result == [{"_id": "won", "total": 30000}, {"_id": "lost", "total": 30000}]

    def test_group_by_bare_field_name(self, deals):
        result = run_pipeline(deals, [{"$group": {"_id": "owner", "n": {"$count": {}}}}])
        assert result == [{"_id": "ann", "n": 2}, {"_id": "bob", "n": 1}]

    def test_booleans_and_numbers_group_apart(self):
        docs = [{"k": True}, {"k": 1}, {"k": True}, {"k": 1.0}]
        result = run_pipeline(docs, [{"$group": {"_id": "$k", "n": {"$count": {}}}}])

        assert result == [{"_id": True, "n": 2}, {"_id": 1, "n": 2}]
        assert result[0]["_id"] is True

    def test_unhashable_keys_group_by_value(self):
        docs = [{"k": [1, 2]}, {"k": [1, 2]}, {"k": "[1, 2]"}]
        result = run_pipeline(docs, [{"$group": {"_id": "$k", "n": {"$count": {}}}}])

        assert [g["n"] for g in result] == [2, 1]

    def test_sum_literal_counts(self, deals):
        result = run_pipeline(deals, [{"$group": {"_id": None, "n": {"$sum": 1}, "double": {"$sum": 2}}}])
        assert result == [{"_id": None, "n": 3, "double": 6}]

    def test_sum_treats_missing_and_non_numeric_as_zero(self):
        docs = [{"v": 5}, {"v": "abc"}, {}, {"v": True}, {"v": 2.5}]
        result = run_pipeline(docs, [{"$group": {"_id": None, "total": {"$sum": "$v"}}}])
        assert result[0]["total"] == 7.5

    def test_avg(self, deals):
        result = run_pipeline(deals, [{"$group": {"_id": "$stage", "avg": {"$avg": "$value"}}}])
        assert result == [{"_id": "won", "avg": 15000}, {"_id": "lost", "avg": 30000}]

    def test_avg_divides_by_group_size(self):
        docs = [{"v": 10}, {"v": None}]
        result = run_pipeline(docs, [{"$group": {"_id": None, "avg": {"$avg": "$v"}}}])
        assert result[0]["avg"] == 5

    def test_empty_input(self):
        assert run_pipeline([], [{"$group": {"_id": None, "total": {"$sum": "$v"}}}]) == []

    def test_unknown_accumulator_skipped(self, deals):
        result = run_pipeline(deals, [{"$group": {"_id": None, "top": {"$max": "$value"}}}])
        assert result == [{"_id": None}]

    def test_accumulator_needs_one_operator(self, deals):
        with pytest.raises(InvalidQuery):
            run_pipeline(deals, [{"$group": {"_id": None, "x": {"$sum": 1, "$avg": "$value"}}}])


class TestPipeline:
    """Tests for pipeline-level behaviour."""

    def test_unknown_stage_passes_through(self, deals):
        result = run_pipeline(deals, [{"$sort": {"value": -1}}, {"$limit": 1}])
        assert result == deals

    def test_empty_stage_passes_through(self, deals):
        assert run_pipeline(deals, [{}]) == deals

    def test_empty_pipeline(self, deals):
        assert run_pipeline(deals, []) == deals

    def test_stage_with_two_keys_rejected(self, deals):
        with pytest.raises(InvalidQuery):
            run_pipeline(deals, [{"$match": {}, "$group": {"_id": None}}])

    def test_non_mapping_stage_rejected(self, deals):
        with pytest.raises(InvalidQuery):
            run_pipeline(deals, ["$match"])

    def test_stages_run_in_order(self, deals):
        result = run_pipeline(
            deals,
            [
                {"$group": {"_id": "$stage", "total": {"$sum": "$value"}}},
                {"$match": {"_id": "won"}},
            ],
        )
        assert result == [{"_id": "won", "total": 30000}]

"""Tests for planner.py - query descriptor planning."""

import dataclasses

import pytest

from tunesearch.models import SearchRequest
from tunesearch.planner import (
    HIGH_SENTINEL,
    Direction,
    Operator,
    QueryPlanner,
    prefix_descriptor,
)


def plan(payload: dict, batch_size: int = 20):
    return QueryPlanner(batch_size=batch_size).plan(SearchRequest.model_validate(payload))


class TestQueryPlanner:
    def test_query_only_plans_tags_title_artist(self):
        descriptors = plan({"query": "Rock"})

        assert [d.branch for d in descriptors] == ["tags", "title", "artist"]

        tags, title, artist = descriptors
        assert tags.operator is Operator.ARRAY_CONTAINS
        assert tags.field == "tags"
        assert tags.value == "rock"
        assert tags.order_by == (("uploadDate", Direction.DESC),)

        assert title.operator is Operator.PREFIX
        assert title.value == "rock"
        assert title.upper_bound == "rock" + HIGH_SENTINEL
        assert title.order_by == (("title", Direction.ASC), ("uploadDate", Direction.DESC))
        assert artist.field == "artist"
        assert artist.order_by == (("artist", Direction.ASC), ("uploadDate", Direction.DESC))

    def test_search_in_tags_false_skips_tag_branch(self):
        descriptors = plan({"query": "rock", "filters": {"searchInTags": False}})

        assert [d.branch for d in descriptors] == ["title", "artist"]

    def test_query_with_filters_adds_filter_branch(self):
        descriptors = plan({"query": "rock", "filters": {"genre": "Rock", "mood": "calm"}})

        assert [d.branch for d in descriptors] == ["tags", "title", "artist", "filters"]
        filters = descriptors[-1]
        assert filters.operator is Operator.EQUALS
        # Filter values are matched exactly as given
        assert filters.equality_filters == (("genre", "Rock"), ("mood", "calm"))

    def test_filters_only_plans_single_branch(self):
        descriptors = plan({"filters": {"artist": "the band"}})

        assert len(descriptors) == 1
        assert descriptors[0].equality_filters == (("artist", "the band"),)
        assert descriptors[0].order_by == (("uploadDate", Direction.DESC),)

    def test_no_query_and_no_equality_filters_still_plans_filter_branch(self):
        descriptors = plan({"filters": {"searchInTags": True}})

        assert len(descriptors) == 1
        assert descriptors[0].branch == "filters"
        assert descriptors[0].equality_filters == ()

    def test_each_branch_is_capped_at_batch_size(self):
        descriptors = plan({"query": "rock", "filters": {"genre": "rock"}, "limit": 100})

        assert all(d.limit == 20 for d in descriptors)

    def test_descriptors_are_immutable(self):
        descriptor = plan({"query": "rock"})[0]

        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.value = "pop"

    def test_planner_is_pure(self):
        request = SearchRequest.model_validate({"query": "rock", "filters": {"mood": "calm"}})
        planner = QueryPlanner()

        assert planner.plan(request) == planner.plan(request)


class TestPrefixDescriptor:
    def test_defaults_to_ascending_field_order(self):
        descriptor = prefix_descriptor("suggest_genre", "genre", "ro", limit=3)

        assert descriptor.upper_bound == "ro" + HIGH_SENTINEL
        assert descriptor.order_by == (("genre", Direction.ASC),)
        assert descriptor.limit == 3
        assert descriptor.describe() == {"branch": "suggest_genre", "operator": "prefix", "limit": 3, "field": "genre"}

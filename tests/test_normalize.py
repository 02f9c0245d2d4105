"""Tests for readgood.ingestion.normalize — item model and validation."""

from __future__ import annotations

import pytest

from readgood.ingestion.normalize import Item, Source, make_item, normalize_tags


class TestMakeItem:
    def test_native_ids_become_strings(self):
        item = make_item(Source.HN, 12345, "Title")
        assert item.source_id == "12345"
        assert item.key == ("hn", "12345")

    def test_strips_fields_and_drops_empty_urls(self):
        item = make_item(Source.REDDIT, " abc ", "  Title  ", url="", discussion_url=None)
        assert item.source_id == "abc"
        assert item.title == "Title"
        assert item.url is None
        assert item.discussion_url is None

    def test_clamps_negative_and_missing_counts(self):
        item = make_item(Source.HN, 1, "Title", score=-5, reply_count=None)
        assert item.score == 0
        assert item.reply_count == 0

    def test_store_fields_default_unset(self):
        item = make_item(Source.PINBOARD, "https://a.example", "Title")
        assert item.first_seen_at is None
        assert item.times_appeared == 0
        assert item.viewed is False
        assert item.tags == frozenset()

    def test_empty_title_rejected(self):
        with pytest.raises(ValueError, match="title"):
            make_item(Source.HN, 1, "   ")

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError, match="source_id"):
            make_item(Source.HN, "", "Title")

    def test_items_are_immutable(self):
        item = make_item(Source.HN, 1, "Title")
        with pytest.raises(AttributeError):
            item.title = "Other"  # type: ignore[misc]

    def test_same_id_different_source_distinct_keys(self):
        assert make_item(Source.HN, "x", "T").key != make_item(Source.REDDIT, "x", "T").key


class TestSource:
    def test_values_and_display_names(self):
        assert Source("hn") is Source.HN
        assert Source.REDDIT.display_name == "Reddit"
        assert Source.PINBOARD.display_name == "Pinboard"

    def test_item_is_hashable(self):
        assert len({make_item(Source.HN, 1, "T"), make_item(Source.HN, 1, "T")}) == 1
        assert isinstance(make_item(Source.HN, 1, "T"), Item)


class TestNormalizeTags:
    def test_lowercases_strips_dedupes(self):
        assert normalize_tags(["Python", " python", "", "AI "]) == ["python", "ai"]

    def test_cap(self):
        assert normalize_tags(["a", "b", "c"], max_tags=2) == ["a", "b"]

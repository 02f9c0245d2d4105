"""Tests for readgood.ingestion.pinboard_adapter — popular page scraper."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx

from readgood.ingestion.adapter import FetchErrorKind
from readgood.ingestion.normalize import Source
from readgood.ingestion.pinboard_adapter import PinboardAdapter, parse_popular_page

POPULAR_HTML = """
<html><body>
<div id="bookmarks">
  <div class="bookmark">
    <a class="bookmark_title" href="https://one.example/">First &amp; best</a>
    <a class="bookmark_count" href="/url:abc/">42</a>
  </div>
  <div class="bookmark">
    <a class="bookmark_title" href="https://two.example/post">Second</a>
    <a class="bookmark_count" href="/url:def/">7</a>
  </div>
  <div class="bookmark">
    <a class="bookmark_title" href="https://one.example/">First again</a>
  </div>
  <div class="bookmark">
    <a class="bookmark_title" href="https://three.example/">Third</a>
  </div>
</div>
</body></html>
"""


def _response(text):
    resp = MagicMock()
    resp.raise_for_status = MagicMock()
    resp.text = text
    return resp


class TestParsePopularPage:
    def test_extracts_bookmarks(self):
        items = parse_popular_page(POPULAR_HTML, max_items=10)

        assert [item.title for item in items] == ["First & best", "Second", "Third"]
        first = items[0]
        assert first.source is Source.PINBOARD
        assert first.source_id == "https://one.example/"
        assert first.url == "https://one.example/"
        assert first.score == 42
        assert items[2].score == 0

    def test_respects_max_items(self):
        items = parse_popular_page(POPULAR_HTML, max_items=1)
        assert len(items) == 1

    def test_no_bookmark_markup_returns_none(self):
        assert parse_popular_page("<html><body>maintenance</body></html>", max_items=10) is None


class TestPinboardAdapter:
    def test_fetch_success(self):
        adapter = PinboardAdapter()

        with patch("readgood.ingestion.pinboard_adapter.httpx.get", return_value=_response(POPULAR_HTML)) as mock_get:
            result = adapter.fetch()

        assert result.ok
        assert len(result.items) == 3
        assert mock_get.call_args.kwargs["headers"]["User-Agent"] == "ReadGood/1.0"

    def test_layout_change_is_parse_failure(self):
        adapter = PinboardAdapter()

        with patch("readgood.ingestion.pinboard_adapter.httpx.get", return_value=_response("<p>new</p>")):
            result = adapter.fetch()

        assert result.error.kind is FetchErrorKind.PARSE_FAILURE

    def test_network_failure(self):
        adapter = PinboardAdapter()

        with patch(
            "readgood.ingestion.pinboard_adapter.httpx.get",
            side_effect=httpx.ConnectError("unreachable"),
        ):
            result = adapter.fetch()

        assert result.error.kind is FetchErrorKind.NETWORK_FAILURE

    def test_timeout(self):
        adapter = PinboardAdapter()

        with patch(
            "readgood.ingestion.pinboard_adapter.httpx.get",
            side_effect=httpx.ConnectTimeout("slow"),
        ):
            result = adapter.fetch()

        assert result.error.kind is FetchErrorKind.TIMEOUT

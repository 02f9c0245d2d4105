"""Tests for readgood.engagement.archive."""

from readgood.engagement.archive import archive_url


def test_builds_submission_url():
    assert archive_url("https://example.com/a") == (
        "https://dgy3yyibpm3nn7.archive.ph/?url=https://example.com/a"
    )


def test_encodes_query_characters():
    url = archive_url("https://example.com/search?q=a b&x=1")
    assert url == (
        "https://dgy3yyibpm3nn7.archive.ph/?url="
        "https://example.com/search%3Fq%3Da%20b%26x%3D1"
    )


def test_empty_url_returns_base():
    assert archive_url("") == "https://archive.ph"
    assert archive_url(None) == "https://archive.ph"
    assert archive_url("   ") == "https://archive.ph"

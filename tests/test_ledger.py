"""Tests for readgood.storage.ledger — per-source fetch records."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from readgood.ingestion.normalize import Source
from readgood.storage.ledger import FetchLedger
from readgood.storage.schema import init_db

T0 = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def ledger(tmp_path):
    db_path = str(tmp_path / "test.db")
    init_db(db_path)
    return FetchLedger(db_path)


class TestFetchLedger:
    def test_never_fetched(self, ledger):
        record = ledger.get(Source.REDDIT)

        assert record.source is Source.REDDIT
        assert record.last_fetched_at is None
        assert ledger.should_refresh(Source.REDDIT, timedelta(minutes=15), now=T0) is True

    def test_within_window_is_fresh(self, ledger):
        ledger.record_success(Source.REDDIT, T0)

        assert ledger.should_refresh(
            Source.REDDIT, timedelta(minutes=15), now=T0 + timedelta(minutes=5)
        ) is False

    def test_exact_window_boundary_is_fresh(self, ledger):
        ledger.record_success(Source.REDDIT, T0)

        assert ledger.should_refresh(
            Source.REDDIT, timedelta(minutes=15), now=T0 + timedelta(minutes=15)
        ) is False

    def test_past_window_is_stale(self, ledger):
        ledger.record_success(Source.REDDIT, T0)

        assert ledger.should_refresh(
            Source.REDDIT, timedelta(minutes=15), now=T0 + timedelta(minutes=16)
        ) is True

    def test_zero_window_always_refreshes(self, ledger):
        ledger.record_success(Source.HN, T0)

        assert ledger.should_refresh(Source.HN, timedelta(0), now=T0) is True

    def test_record_success_overwrites(self, ledger):
        ledger.record_success(Source.PINBOARD, T0)
        ledger.record_success(Source.PINBOARD, T0 + timedelta(hours=1))

        assert ledger.last_fetched_at(Source.PINBOARD) == T0 + timedelta(hours=1)

    def test_sources_are_independent(self, ledger):
        ledger.record_success(Source.HN, T0)

        assert ledger.last_fetched_at(Source.HN) == T0
        assert ledger.last_fetched_at(Source.REDDIT) is None

    def test_naive_now_treated_as_utc(self, ledger):
        ledger.record_success(Source.REDDIT, T0)
        naive = datetime(2025, 6, 1, 12, 5)

        assert ledger.should_refresh(Source.REDDIT, timedelta(minutes=15), now=naive) is False

"""Fetch Ledger — per-source record of the last successful fetch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from readgood.ingestion.normalize import Source
from readgood.storage.connection import get_connection
from readgood.storage.item_store import to_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchRecord:
    """When a source was last fetched successfully. None means never."""

    source: Source
    last_fetched_at: datetime | None


class FetchLedger:
    """Drives cache eligibility. Only successful fetches are ever recorded."""

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path

    def get(self, source: Source) -> FetchRecord:
        with get_connection(self._database_path) as conn:
            row = conn.execute(
                "SELECT last_fetched_at FROM fetch_records WHERE source = ?",
                (source.value,),
            ).fetchone()
        if row is None:
            return FetchRecord(source=source, last_fetched_at=None)
        return FetchRecord(
            source=source,
            last_fetched_at=datetime.fromisoformat(row["last_fetched_at"]),
        )

    def last_fetched_at(self, source: Source) -> datetime | None:
        return self.get(source).last_fetched_at

    def should_refresh(
        self,
        source: Source,
        cache_window: timedelta,
        now: datetime | None = None,
    ) -> bool:
        """True if the source was never fetched or its cache window has elapsed.

        A zero (or negative) window always refreshes.
        """
        if cache_window <= timedelta(0):
            return True
        last = self.last_fetched_at(source)
        if last is None:
            return True
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now - last > cache_window

    def record_success(self, source: Source, at: datetime | None = None) -> None:
        """Upsert the source's record with the time of a successful fetch."""
        fetched_at = to_timestamp(at)
        with get_connection(self._database_path) as conn:
            conn.execute(
                "INSERT INTO fetch_records (source, last_fetched_at) VALUES (?, ?) "
                "ON CONFLICT(source) DO UPDATE SET last_fetched_at = excluded.last_fetched_at",
                (source.value, fetched_at),
            )
        logger.debug("Recorded successful fetch for %s at %s", source.value, fetched_at)

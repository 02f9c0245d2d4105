"""Item Store — deduplicated, persisted collection of every item ever seen."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Iterable

from readgood.ingestion.normalize import Item, Source, normalize_tags
from readgood.storage.connection import get_connection

logger = logging.getLogger(__name__)

_TAG_SEPARATOR = "\x1f"

SELECT_ITEMS = (
    "SELECT i.source, i.source_id, i.title, i.url, i.discussion_url, i.score, "
    "i.reply_count, i.author, i.first_seen_at, i.last_seen_at, i.times_appeared, "
    "i.viewed, i.viewed_at, i.view_count, "
    "(SELECT group_concat(t.tag, char(31)) FROM item_tags t "
    " WHERE t.source = i.source AND t.source_id = i.source_id) AS tag_list "
    "FROM items i "
)

# Descriptive fields are refreshed from the source; engagement state and
# first_seen_at are never touched by a refresh.
_UPSERT_SQL = (
    "INSERT INTO items "
    "(source, source_id, title, url, discussion_url, score, reply_count, author, "
    "first_seen_at, last_seen_at, times_appeared) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1) "
    "ON CONFLICT(source, source_id) DO UPDATE SET "
    "title = excluded.title, "
    "url = COALESCE(excluded.url, items.url), "
    "discussion_url = COALESCE(excluded.discussion_url, items.discussion_url), "
    "score = excluded.score, "
    "reply_count = excluded.reply_count, "
    "author = COALESCE(excluded.author, items.author), "
    "last_seen_at = excluded.last_seen_at, "
    "times_appeared = items.times_appeared + 1"
)


def to_timestamp(value: datetime | None = None) -> str:
    """Render a datetime (default: now) as a sortable UTC ISO 8601 string."""
    if value is None:
        value = datetime.now(timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def row_to_item(row: sqlite3.Row) -> Item:
    tag_list = row["tag_list"]
    tags = frozenset(tag_list.split(_TAG_SEPARATOR)) if tag_list else frozenset()
    return Item(
        source=Source(row["source"]),
        source_id=row["source_id"],
        title=row["title"],
        url=row["url"],
        discussion_url=row["discussion_url"],
        score=row["score"],
        reply_count=row["reply_count"],
        author=row["author"],
        first_seen_at=row["first_seen_at"],
        last_seen_at=row["last_seen_at"],
        times_appeared=row["times_appeared"],
        viewed=bool(row["viewed"]),
        viewed_at=row["viewed_at"],
        view_count=row["view_count"],
        tags=tags,
    )


class ItemStore:
    """SQLite-backed store keyed by (source, source_id).

    Each item write is one atomic INSERT ... ON CONFLICT statement, and
    concurrent writers serialize on the SQLite write lock, so each appearance
    is counted exactly once whichever thread writes it.
    """

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path

    @property
    def database_path(self) -> str:
        return self._database_path

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def upsert(self, item: Item, now: datetime | None = None) -> Item:
        """Insert a new item or record a reappearance of an existing one."""
        return self.bulk_upsert([item], now=now)[0]

    def bulk_upsert(self, items: Iterable[Item], now: datetime | None = None) -> list[Item]:
        """Upsert a batch in one transaction. Returns the stored items.

        A key repeated within the batch counts as a single appearance.
        """
        seen_at = to_timestamp(now)
        batch: dict[tuple[str, str], Item] = {}
        for item in items:
            batch.setdefault(item.key, item)
        if not batch:
            return []

        with get_connection(self._database_path) as conn:
            for item in batch.values():
                conn.execute(
                    _UPSERT_SQL,
                    (
                        item.source.value,
                        item.source_id,
                        item.title,
                        item.url,
                        item.discussion_url,
                        item.score,
                        item.reply_count,
                        item.author,
                        seen_at,
                        seen_at,
                    ),
                )
            stored = [self._fetch_one(conn, *key) for key in batch]

        logger.debug("Upserted %d items at %s", len(stored), seen_at)
        return [item for item in stored if item is not None]

    def mark_viewed(self, source: Source, source_id: str, now: datetime | None = None) -> Item | None:
        """Record one view of an item. Returns None if the item is unknown."""
        viewed_at = to_timestamp(now)
        with get_connection(self._database_path) as conn:
            cursor = conn.execute(
                "UPDATE items SET viewed = 1, viewed_at = ?, view_count = view_count + 1 "
                "WHERE source = ? AND source_id = ?",
                (viewed_at, source.value, source_id),
            )
            if cursor.rowcount == 0:
                return None
            return self._fetch_one(conn, source.value, source_id)

    def add_tags(
        self,
        source: Source,
        source_id: str,
        tags: Iterable[str],
        now: datetime | None = None,
    ) -> Item | None:
        """Attach lowercase tags to an item, ignoring ones it already has."""
        created_at = to_timestamp(now)
        cleaned = normalize_tags(tags)
        with get_connection(self._database_path) as conn:
            exists = conn.execute(
                "SELECT 1 FROM items WHERE source = ? AND source_id = ?",
                (source.value, source_id),
            ).fetchone()
            if exists is None:
                return None
            conn.executemany(
                "INSERT OR IGNORE INTO item_tags (source, source_id, tag, created_at) "
                "VALUES (?, ?, ?, ?)",
                [(source.value, source_id, tag, created_at) for tag in cleaned],
            )
            return self._fetch_one(conn, source.value, source_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, source: Source, source_id: str) -> Item | None:
        with get_connection(self._database_path) as conn:
            return self._fetch_one(conn, source.value, str(source_id))

    def get_many(self, keys: Iterable[tuple[str, str]]) -> dict[tuple[str, str], Item]:
        """Look up items by composite key. Unknown keys are left out."""
        found: dict[tuple[str, str], Item] = {}
        with get_connection(self._database_path) as conn:
            for source, source_id in keys:
                item = self._fetch_one(conn, source, source_id)
                if item is not None:
                    found[item.key] = item
        return found

    def get_all(
        self,
        source: Source | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[Item]:
        """Return stored items, highest score first, then most recently seen.

        ``since`` keeps only items seen at or after that instant, which for a
        cache hit means "items from the last successful fetch".
        """
        clauses: list[str] = []
        params: list[object] = []
        if source is not None:
            clauses.append("i.source = ?")
            params.append(source.value)
        if since is not None:
            clauses.append("i.last_seen_at >= ?")
            params.append(to_timestamp(since))

        sql = SELECT_ITEMS
        if clauses:
            sql += "WHERE " + " AND ".join(clauses) + " "
        sql += "ORDER BY i.score DESC, i.last_seen_at DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with get_connection(self._database_path) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [row_to_item(row) for row in rows]

    def search_by_title(self, query: str, limit: int = 100) -> list[Item]:
        """Case-insensitive title substring search, most recently seen first."""
        pattern = f"%{query.strip()}%"
        with get_connection(self._database_path) as conn:
            rows = conn.execute(
                SELECT_ITEMS + "WHERE i.title LIKE ? "
                "ORDER BY i.last_seen_at DESC LIMIT ?",
                (pattern, limit),
            ).fetchall()
        return [row_to_item(row) for row in rows]

    def search_by_tags(self, tags: Iterable[str], limit: int = 100) -> list[Item]:
        """Items carrying any of the given tags, most recently seen first."""
        wanted = normalize_tags(tags)
        if not wanted:
            return []
        placeholders = ", ".join("?" for _ in wanted)
        with get_connection(self._database_path) as conn:
            rows = conn.execute(
                SELECT_ITEMS + "WHERE EXISTS ("
                "SELECT 1 FROM item_tags t WHERE t.source = i.source "
                f"AND t.source_id = i.source_id AND t.tag IN ({placeholders})) "
                "ORDER BY i.last_seen_at DESC LIMIT ?",
                (*wanted, limit),
            ).fetchall()
        return [row_to_item(row) for row in rows]

    def search(self, query: str, limit: int = 100) -> list[Item]:
        """Route a free-text query: comma-separated input is a tag search."""
        if "," in query:
            return self.search_by_tags(query.split(","), limit=limit)
        return self.search_by_title(query, limit=limit)

    @staticmethod
    def _fetch_one(conn: sqlite3.Connection, source: str, source_id: str) -> Item | None:
        row = conn.execute(
            SELECT_ITEMS + "WHERE i.source = ? AND i.source_id = ?",
            (source, source_id),
        ).fetchone()
        return row_to_item(row) if row is not None else None


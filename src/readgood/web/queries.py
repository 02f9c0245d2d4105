"""Read-only query functions for the web API."""

from __future__ import annotations

from readgood.ingestion.normalize import Item, Source
from readgood.storage.item_store import SELECT_ITEMS, row_to_item
from readgood.web.deps import get_readonly_connection

RECENT_LIMIT = 50
_GEM_MAX_APPEARANCES = 2


def _query_items(database_path: str, where: str, order: str, params: list, limit: int) -> list[Item]:
    with get_readonly_connection(database_path) as conn:
        rows = conn.execute(
            f"{SELECT_ITEMS}WHERE {where} ORDER BY {order} LIMIT ?",
            (*params, limit),
        ).fetchall()
    return [row_to_item(row) for row in rows]


def _source_clause(source: Source | None) -> tuple[str, list]:
    if source is None:
        return "", []
    return " AND i.source = ?", [source.value]


# ---------------------------------------------------------------------------
# Item views
# ---------------------------------------------------------------------------
def list_unread(database_path: str, source: Source | None = None, limit: int = 100) -> list[Item]:
    """Items never clicked, most recently seen first."""
    clause, params = _source_clause(source)
    return _query_items(
        database_path, "i.viewed = 0" + clause, "i.last_seen_at DESC", params, limit
    )


def list_recent(database_path: str, limit: int = RECENT_LIMIT) -> list[Item]:
    """Recently viewed items, newest view first."""
    return _query_items(
        database_path, "i.viewed = 1", "i.viewed_at DESC", [], limit
    )


def list_gems(database_path: str, source: Source | None = None, limit: int = 100) -> list[Item]:
    """Unread items that have only surfaced once or twice."""
    clause, params = _source_clause(source)
    return _query_items(
        database_path,
        "i.viewed = 0 AND i.times_appeared <= ?" + clause,
        "i.score DESC, i.last_seen_at DESC",
        [_GEM_MAX_APPEARANCES, *params],
        limit,
    )


# ---------------------------------------------------------------------------
# get_stats
# ---------------------------------------------------------------------------
def get_stats(database_path: str) -> dict:
    """Return aggregate counts across items, clicks, tags, and fetches."""
    with get_readonly_connection(database_path) as conn:
        total_items = conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
        viewed_items = conn.execute(
            "SELECT COUNT(*) FROM items WHERE viewed = 1"
        ).fetchone()[0]
        total_clicks = conn.execute("SELECT COUNT(*) FROM clicks").fetchone()[0]
        total_tags = conn.execute(
            "SELECT COUNT(DISTINCT tag) FROM item_tags"
        ).fetchone()[0]

        source_rows = conn.execute(
            "SELECT source, COUNT(*) AS cnt FROM items GROUP BY source"
        ).fetchall()
        items_by_source = {r["source"]: r["cnt"] for r in source_rows}

        click_rows = conn.execute(
            "SELECT click_type, COUNT(*) AS cnt FROM clicks GROUP BY click_type"
        ).fetchall()
        clicks_by_type = {r["click_type"]: r["cnt"] for r in click_rows}

        tag_rows = conn.execute(
            "SELECT tag, COUNT(*) AS cnt FROM item_tags "
            "GROUP BY tag ORDER BY cnt DESC, tag ASC LIMIT 10"
        ).fetchall()
        top_tags = {r["tag"]: r["cnt"] for r in tag_rows}

        fetch_rows = conn.execute(
            "SELECT source, last_fetched_at FROM fetch_records"
        ).fetchall()
        last_fetched_at = {r["source"]: r["last_fetched_at"] for r in fetch_rows}

        row = conn.execute(
            "SELECT started_at, status FROM refresh_runs ORDER BY started_at DESC LIMIT 1"
        ).fetchone()

    return {
        "total_items": total_items,
        "viewed_items": viewed_items,
        "total_clicks": total_clicks,
        "total_tags": total_tags,
        "items_by_source": items_by_source,
        "clicks_by_type": clicks_by_type,
        "top_tags": top_tags,
        "last_fetched_at": last_fetched_at,
        "last_refresh_at": row["started_at"] if row else None,
        "last_refresh_status": row["status"] if row else None,
    }

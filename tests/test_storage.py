"""Tests for readgood.storage — schema, connection, and constraints."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager

import pytest

from readgood.storage.connection import get_connection
from readgood.storage.schema import init_db

EXPECTED_TABLES = {"items", "item_tags", "clicks", "fetch_records", "refresh_runs"}

EXPECTED_INDEXES = {
    "idx_items_last_seen_at",
    "idx_items_viewed_at",
    "idx_item_tags_tag",
    "idx_clicks_item",
    "idx_clicks_clicked_at",
    "idx_refresh_runs_started_at",
}


@pytest.fixture()
def db_path(tmp_path):
    """Return a database path inside a temporary directory."""
    return str(tmp_path / "test.db")


@pytest.fixture()
def initialized_db(db_path):
    """Initialize the database and return the path."""
    init_db(db_path)
    return db_path


def _insert_item(conn: sqlite3.Connection, *, source: str = "hn", source_id: str = "1", score: int = 10) -> None:
    """Insert a minimal valid item row."""
    conn.execute(
        "INSERT INTO items (source, source_id, title, score, first_seen_at, last_seen_at) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        (source, source_id, "Title", score, "2025-01-01T00:00:00+00:00", "2025-01-01T00:00:00+00:00"),
    )


# --- Table and index existence ---


def test_init_db_creates_all_tables(initialized_db):
    with get_connection(initialized_db) as conn:
        rows = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
        ).fetchall()
        table_names = {row["name"] for row in rows}
    assert EXPECTED_TABLES == table_names


def test_init_db_is_idempotent(db_path):
    init_db(db_path)
    init_db(db_path)  # Should not raise


def test_reinit_runs_no_alter_statements(db_path, monkeypatch):
    init_db(db_path)
    statements: list[str] = []
    real_get_connection = get_connection

    @contextmanager
    def traced(path):
        with real_get_connection(path) as conn:
            conn.set_trace_callback(statements.append)
            yield conn

    monkeypatch.setattr("readgood.storage.schema.get_connection", traced)
    init_db(db_path)

    assert not [s for s in statements if "ALTER TABLE" in s.upper()]
    with real_get_connection(db_path) as conn:
        columns = {row["name"] for row in conn.execute("PRAGMA table_info(items)").fetchall()}
    assert "author" in columns


def test_init_db_creates_indexes(initialized_db):
    with get_connection(initialized_db) as conn:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%'").fetchall()
        index_names = {row["name"] for row in rows}
    assert EXPECTED_INDEXES == index_names


# --- Pragmas ---


def test_wal_mode_enabled(initialized_db):
    with get_connection(initialized_db) as conn:
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    assert mode == "wal"


def test_foreign_keys_enabled(initialized_db):
    with get_connection(initialized_db) as conn:
        fk = conn.execute("PRAGMA foreign_keys").fetchone()[0]
    assert fk == 1


# --- Constraint enforcement ---


def test_composite_key_unique(initialized_db):
    with pytest.raises(sqlite3.IntegrityError):
        with get_connection(initialized_db) as conn:
            _insert_item(conn, source="hn", source_id="1")
            _insert_item(conn, source="hn", source_id="1")


def test_same_id_different_sources_allowed(initialized_db):
    with get_connection(initialized_db) as conn:
        _insert_item(conn, source="hn", source_id="1")
        _insert_item(conn, source="reddit", source_id="1")
        count = conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
    assert count == 2


def test_unknown_source_rejected(initialized_db):
    with pytest.raises(sqlite3.IntegrityError):
        with get_connection(initialized_db) as conn:
            _insert_item(conn, source="lobsters")


def test_negative_score_rejected(initialized_db):
    with pytest.raises(sqlite3.IntegrityError):
        with get_connection(initialized_db) as conn:
            _insert_item(conn, score=-1)


def test_tag_requires_existing_item(initialized_db):
    with pytest.raises(sqlite3.IntegrityError):
        with get_connection(initialized_db) as conn:
            conn.execute(
                "INSERT INTO item_tags (source, source_id, tag, created_at) VALUES (?, ?, ?, ?)",
                ("hn", "missing", "python", "2025-01-01T00:00:00+00:00"),
            )


def test_click_type_constraint(initialized_db):
    with pytest.raises(sqlite3.IntegrityError):
        with get_connection(initialized_db) as conn:
            _insert_item(conn)
            conn.execute(
                "INSERT INTO clicks (id, source, source_id, click_type, clicked_at) "
                "VALUES (?, ?, ?, ?, ?)",
                ("c-1", "hn", "1", "hover", "2025-01-01T00:00:00+00:00"),
            )


def test_rollback_on_error(initialized_db):
    with pytest.raises(RuntimeError):
        with get_connection(initialized_db) as conn:
            _insert_item(conn)
            raise RuntimeError("boom")
    with get_connection(initialized_db) as conn:
        count = conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
    assert count == 0

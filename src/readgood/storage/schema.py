"""Database schema definition and initialization."""

from __future__ import annotations

import logging

from readgood.storage.connection import get_connection

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
-- Every item ever seen, one row per (source, source_id)
CREATE TABLE IF NOT EXISTS items (
    source          TEXT NOT NULL CHECK (source IN ('hn', 'reddit', 'pinboard')),
    source_id       TEXT NOT NULL,
    title           TEXT NOT NULL,
    url             TEXT,
    discussion_url  TEXT,
    score           INTEGER NOT NULL DEFAULT 0 CHECK (score >= 0),
    reply_count     INTEGER NOT NULL DEFAULT 0 CHECK (reply_count >= 0),
    author          TEXT,
    first_seen_at   TEXT NOT NULL,
    last_seen_at    TEXT NOT NULL,
    times_appeared  INTEGER NOT NULL DEFAULT 1 CHECK (times_appeared >= 1),
    viewed          INTEGER NOT NULL DEFAULT 0,
    viewed_at       TEXT,
    view_count      INTEGER NOT NULL DEFAULT 0 CHECK (view_count >= 0),
    PRIMARY KEY (source, source_id)
);

-- Lowercase topic tags, unique per item
CREATE TABLE IF NOT EXISTS item_tags (
    source          TEXT NOT NULL,
    source_id       TEXT NOT NULL,
    tag             TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    PRIMARY KEY (source, source_id, tag),
    FOREIGN KEY (source, source_id) REFERENCES items(source, source_id)
);

-- User clicks on items
CREATE TABLE IF NOT EXISTS clicks (
    id              TEXT PRIMARY KEY,
    source          TEXT NOT NULL,
    source_id       TEXT NOT NULL,
    click_type      TEXT NOT NULL CHECK (click_type IN ('article', 'comments', 'archive')),
    clicked_at      TEXT NOT NULL,
    FOREIGN KEY (source, source_id) REFERENCES items(source, source_id)
);

-- Last successful fetch per source
CREATE TABLE IF NOT EXISTS fetch_records (
    source          TEXT PRIMARY KEY CHECK (source IN ('hn', 'reddit', 'pinboard')),
    last_fetched_at TEXT NOT NULL
);

-- Refresh cycle provenance
CREATE TABLE IF NOT EXISTS refresh_runs (
    id          TEXT PRIMARY KEY,
    started_at  TEXT NOT NULL,
    finished_at TEXT NOT NULL,
    status      TEXT NOT NULL CHECK (status IN ('success', 'error')),
    result      TEXT NOT NULL,   -- JSON
    error       TEXT
);

-- Indexes: items
CREATE INDEX IF NOT EXISTS idx_items_last_seen_at ON items(last_seen_at);
CREATE INDEX IF NOT EXISTS idx_items_viewed_at ON items(viewed_at);

-- Indexes: item_tags
CREATE INDEX IF NOT EXISTS idx_item_tags_tag ON item_tags(tag);

-- Indexes: clicks
CREATE INDEX IF NOT EXISTS idx_clicks_item ON clicks(source, source_id);
CREATE INDEX IF NOT EXISTS idx_clicks_clicked_at ON clicks(clicked_at);

-- Indexes: refresh_runs
CREATE INDEX IF NOT EXISTS idx_refresh_runs_started_at ON refresh_runs(started_at);
"""


def init_db(database_path: str) -> None:
    """Create all tables and indexes if they do not already exist."""
    with get_connection(database_path) as conn:
        conn.executescript(_SCHEMA_SQL)
    logger.info("Database initialized at %s", database_path)

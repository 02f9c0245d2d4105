"""SQLite connection management."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Generator

_BUSY_TIMEOUT_SECONDS = 10.0


@contextmanager
def get_connection(database_path: str) -> Generator[sqlite3.Connection, None, None]:
    """Open a SQLite connection with WAL mode and foreign keys enabled.

    Concurrent writers wait on the database lock for up to the busy timeout
    instead of failing immediately. Commits on clean exit, rolls back on
    exception, and always closes.
    """
    conn = sqlite3.connect(database_path, timeout=_BUSY_TIMEOUT_SECONDS)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()

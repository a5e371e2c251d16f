"""
storage/database.py

One shared SQLite connection for the event store and alert registry.

Notes:
  - FastAPI runs the sync routes in a threadpool, so the connection is
    opened with check_same_thread=False and every statement goes through
    self.lock. The lock is re-entrant so transaction() can wrap several
    repository calls.
  - WAL plus busy_timeout: a locked file fails after 5s instead of at once.
  - events.id is the arrival sequence and the only ordering used for history.
  - alerts.update_seq orders the alert list by most recent update.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
import time
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

BASE_SCHEMA_VERSION = 1

_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA synchronous=NORMAL",
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp   REAL NOT NULL,
    source_ip   TEXT NOT NULL,
    username    TEXT NOT NULL,
    event_type  TEXT NOT NULL DEFAULT 'AUTH',
    status      TEXT NOT NULL CHECK (status IN ('success', 'failed')),
    geo_tag     TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_events_source_ip ON events(source_ip);

CREATE TABLE IF NOT EXISTS alerts (
    source_ip     TEXT PRIMARY KEY,
    severity      TEXT NOT NULL,
    risk_score    INTEGER NOT NULL,
    rule          TEXT NOT NULL,
    reason        TEXT NOT NULL,
    summary       TEXT NOT NULL,
    investigation TEXT NOT NULL DEFAULT '{}',
    created_at    REAL NOT NULL,
    updated_at    REAL NOT NULL,
    update_seq    INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_alerts_update_seq ON alerts(update_seq DESC);
CREATE INDEX IF NOT EXISTS idx_alerts_severity ON alerts(severity);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at REAL NOT NULL
);
"""


class Database:
    """
    Usage:
        db = Database("data/authwatch.db")   # or ":memory:"
        db.init_schema()
        apply_migrations(db)
        store, registry = SqliteEventStore(db), SqliteAlertRegistry(db)
        ...
        db.close()
    """

    def __init__(self, db_path: str = "data/authwatch.db") -> None:
        self.db_path = db_path
        if db_path != ":memory:":
            parent = os.path.dirname(os.path.abspath(db_path))
            os.makedirs(parent, exist_ok=True)

        self.lock = threading.RLock()
        self._closed = False
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        for pragma in _PRAGMAS:
            self.conn.execute(pragma)
        logger.info("Opened SQLite database at %r", db_path)

    def init_schema(self) -> None:
        """Create tables and indexes if missing and record schema v1."""
        with self.lock:
            self.conn.executescript(_SCHEMA)
            self.conn.execute(
                "INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, ?)",
                (BASE_SCHEMA_VERSION, time.time()),
            )
            self.conn.commit()
        logger.info("Base schema ready (v%d)", BASE_SCHEMA_VERSION)

    # ------------------------------------------------------------------
    # Statement helpers
    # ------------------------------------------------------------------

    def fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self.lock:
            return self.conn.execute(sql, params).fetchall()

    def fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        with self.lock:
            return self.conn.execute(sql, params).fetchone()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the lock for a group of statements; commit, or roll back on error."""
        with self.lock:
            try:
                yield self.conn
            except BaseException:
                self.conn.rollback()
                raise
            self.conn.commit()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Commit and close. A second call does nothing."""
        with self.lock:
            if self._closed:
                return
            self._closed = True
            try:
                self.conn.commit()
            except sqlite3.Error as exc:
                logger.warning("Final commit failed on %r: %s", self.db_path, exc)
            self.conn.close()
            logger.info("Closed SQLite database at %r", self.db_path)

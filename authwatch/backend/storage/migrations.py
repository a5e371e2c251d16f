"""
storage/migrations.py

Schema upgrades layered over Database.init_schema(), which creates version 1.

Each entry in _MIGRATIONS is (version, fn). fn receives a cursor and runs
inside its own transaction; the version row is written in that same
transaction, so a failed step leaves the schema at the previous version.

v2: composite (source_ip, status, id) index for per-source failure counts
    and the n-th-failure lookup.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from typing import Callable

from .database import Database

logger = logging.getLogger(__name__)

Migration = Callable[[sqlite3.Cursor], None]


def migration_2(cur: sqlite3.Cursor) -> None:
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_events_source_status "
        "ON events(source_ip, status, id)"
    )


_MIGRATIONS: list[tuple[int, Migration]] = [
    (2, migration_2),
]


def schema_version(db: Database) -> int:
    row = db.fetchone("SELECT MAX(version) FROM schema_version")
    return row[0] or 0


def apply_migrations(db: Database) -> int:
    """Run every migration newer than the stored version; return the final version."""
    with db.lock:
        version = schema_version(db)
        for target, step in sorted(_MIGRATIONS, key=lambda m: m[0]):
            if target <= version:
                continue
            logger.info("Migrating schema v%d -> v%d", version, target)
            try:
                with db.transaction() as conn:
                    cur = conn.cursor()
                    step(cur)
                    cur.execute(
                        "INSERT OR REPLACE INTO schema_version (version, applied_at) "
                        "VALUES (?, ?)",
                        (target, time.time()),
                    )
            except Exception:
                logger.exception("Migration to v%d failed, schema left at v%d", target, version)
                raise
            version = target
        logger.debug("Schema at v%d", version)
        return version

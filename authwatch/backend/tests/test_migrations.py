"""
tests/test_migrations.py

Schema versioning on top of Database.init_schema().
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from authwatch.backend.storage.database import Database
from authwatch.backend.storage.migrations import apply_migrations

_TARGET = "authwatch.backend.storage.migrations._MIGRATIONS"


@pytest.fixture
def db():
    d = Database(":memory:")
    d.init_schema()
    yield d
    d.close()


def _version(db: Database) -> int:
    return db.fetchone("SELECT MAX(version) FROM schema_version")[0]


def _index_names(db: Database) -> set[str]:
    rows = db.fetchall("SELECT name FROM sqlite_master WHERE type = 'index'")
    return {r["name"] for r in rows}


class TestBuiltInMigrations:

    def test_fresh_schema_is_version_one(self, db):
        assert _version(db) == 1

    def test_upgrades_to_latest(self, db):
        apply_migrations(db)
        assert _version(db) == 2

    def test_source_status_index_created(self, db):
        assert "idx_events_source_status" not in _index_names(db)
        apply_migrations(db)
        assert "idx_events_source_status" in _index_names(db)

    def test_rerun_is_noop(self, db):
        apply_migrations(db)
        apply_migrations(db)
        assert _version(db) == 2


class TestMigrationRunner:

    def test_pending_run_in_order_once(self, db):
        seen: list[int] = []
        steps = [
            (2, MagicMock(side_effect=lambda cur: seen.append(2))),
            (3, MagicMock(side_effect=lambda cur: seen.append(3))),
        ]
        with patch(_TARGET, steps):
            apply_migrations(db)
            apply_migrations(db)
        assert seen == [2, 3]
        assert _version(db) == 3

    def test_only_newer_versions_run(self, db):
        with patch(_TARGET, [(2, MagicMock())]):
            apply_migrations(db)

        old, new = MagicMock(), MagicMock()
        with patch(_TARGET, [(2, old), (3, new)]):
            apply_migrations(db)
        old.assert_not_called()
        new.assert_called_once()

    def test_failure_rolls_back_and_raises(self, db):
        def broken(cur):
            cur.execute("CREATE TABLE scratch (x INTEGER)")
            raise RuntimeError("migration exploded")

        with patch(_TARGET, [(2, broken)]):
            with pytest.raises(RuntimeError, match="exploded"):
                apply_migrations(db)

        assert _version(db) == 1

"""storage/__init__.py"""
from __future__ import annotations

from .base import AlertRegistry, EventStore
from .database import Database
from .memory import InMemoryAlertRegistry, InMemoryEventStore
from .migrations import apply_migrations
from .repository import SqliteAlertRegistry, SqliteEventStore


def build_stores(backend: str = "memory", db_path: str = "data/authwatch.db") -> tuple[EventStore, AlertRegistry]:
    """Return an (EventStore, AlertRegistry) pair for the named backend."""
    if backend == "memory":
        return InMemoryEventStore(), InMemoryAlertRegistry()
    if backend == "sqlite":
        db = Database(db_path)
        db.init_schema()
        apply_migrations(db)
        return SqliteEventStore(db), SqliteAlertRegistry(db)
    raise ValueError(f"unknown store backend {backend!r}")


__all__ = [
    "AlertRegistry",
    "Database",
    "EventStore",
    "InMemoryAlertRegistry",
    "InMemoryEventStore",
    "SqliteAlertRegistry",
    "SqliteEventStore",
    "build_stores",
]

"""Shared pytest fixtures for the AuthWatch backend tests."""

from __future__ import annotations

import pytest

from authwatch.backend.metrics import METRICS
from authwatch.backend.storage import (
    Database,
    InMemoryAlertRegistry,
    InMemoryEventStore,
    SqliteAlertRegistry,
    SqliteEventStore,
)
from authwatch.backend.storage.migrations import apply_migrations


class FakeClock:
    """Deterministic clock: every call returns the current time, then ticks."""

    def __init__(self, start: float = 1_700_000_000.0, step: float = 1.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Counters are a process-wide singleton; start every test from zero."""
    METRICS.reset_all()
    yield


@pytest.fixture(params=["memory", "sqlite"])
def stores(request):
    """(EventStore, AlertRegistry) pair for each backend."""
    if request.param == "memory":
        yield InMemoryEventStore(), InMemoryAlertRegistry()
        return
    db = Database(":memory:")
    db.init_schema()
    apply_migrations(db)
    yield SqliteEventStore(db), SqliteAlertRegistry(db)
    db.close()

"""
storage/base.py

Abstract contracts every storage backend must implement.

EventStore    - append-only, arrival-ordered history of AuthEvents
AlertRegistry - at most one Alert per source IP, create-or-update

Backends raise StorageError on failure and never return partial writes.
Readers may run concurrently with writers and see the state either just
before or just after any single write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..engine.models import Alert, Investigation, Severity, TimelineRef
from ..models import AuthEvent


class EventStore(ABC):

    @abstractmethod
    def append(self, event: AuthEvent) -> AuthEvent:
        """Record *event* and return it with its event_id assigned."""
        ...

    @abstractmethod
    def fail_count_for(self, source_ip: str, since: float | None = None) -> int:
        """Number of failed events for *source_ip* (at or after *since*, if given)."""
        ...

    @abstractmethod
    def has_success_after_n_failures(
        self, source_ip: str, n: int, since: float | None = None
    ) -> bool:
        """
        True iff some success event for *source_ip* is preceded, in arrival
        order and not necessarily contiguously, by at least *n* failed events.
        """
        ...

    @abstractmethod
    def recent_events(self, limit: int = 50) -> list[AuthEvent]:
        """Most recent first, across all sources."""
        ...

    @abstractmethod
    def events_for(self, source_ip: str) -> list[AuthEvent]:
        """Full history of one source in arrival order."""
        ...

    @abstractmethod
    def count(self) -> int:
        ...

    def close(self) -> None:
        """Release backend resources. No-op unless overridden."""


class AlertRegistry(ABC):

    @abstractmethod
    def upsert(
        self,
        source_ip: str,
        severity: Severity,
        risk_score: int,
        reason: str,
        timeline: TimelineRef,
        summary: str,
        now: float,
        investigation: Investigation | None = None,
    ) -> tuple[Alert, bool]:
        """
        Create the alert for *source_ip* or update it in place.

        Returns (alert, created). On update, created_at is left untouched.
        """
        ...

    @abstractmethod
    def get(self, source_ip: str) -> Alert | None:
        ...

    @abstractmethod
    def list_all(self) -> list[Alert]:
        """Most recently updated first."""
        ...

    @abstractmethod
    def count(self, severity: Severity | None = None) -> int:
        ...

    def close(self) -> None:
        """Release backend resources. No-op unless overridden."""

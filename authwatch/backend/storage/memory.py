"""
storage/memory.py

In-process backends for EventStore and AlertRegistry.

Each structure is guarded by its own threading.Lock. Readers receive
copies taken under the lock, so they never observe a half-applied write.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections import OrderedDict

from ..engine.models import Alert, Investigation, Severity, TimelineRef
from ..models import AuthEvent, EventStatus
from .base import AlertRegistry, EventStore

logger = logging.getLogger(__name__)


class InMemoryEventStore(EventStore):
    def __init__(self) -> None:
        self._events: list[AuthEvent] = []
        self._by_source: dict[str, list[AuthEvent]] = {}
        self._lock = threading.Lock()

    def append(self, event: AuthEvent) -> AuthEvent:
        with self._lock:
            stored = dataclasses.replace(event, event_id=len(self._events) + 1)
            self._events.append(stored)
            self._by_source.setdefault(stored.source_ip, []).append(stored)
        return stored

    def fail_count_for(self, source_ip: str, since: float | None = None) -> int:
        with self._lock:
            history = self._by_source.get(source_ip, ())
            return sum(
                1 for e in history
                if e.failed and (since is None or e.timestamp >= since)
            )

    def has_success_after_n_failures(
        self, source_ip: str, n: int, since: float | None = None
    ) -> bool:
        with self._lock:
            history = list(self._by_source.get(source_ip, ()))

        failures = 0
        for e in history:
            if since is not None and e.timestamp < since:
                continue
            if e.status is EventStatus.FAILED:
                failures += 1
            elif failures >= n:
                return True
        return False

    def recent_events(self, limit: int = 50) -> list[AuthEvent]:
        if limit <= 0:
            return []
        with self._lock:
            return self._events[-limit:][::-1]

    def events_for(self, source_ip: str) -> list[AuthEvent]:
        with self._lock:
            return list(self._by_source.get(source_ip, ()))

    def count(self) -> int:
        with self._lock:
            return len(self._events)


class InMemoryAlertRegistry(AlertRegistry):
    def __init__(self) -> None:
        # source_ip → Alert, least recently updated first
        self._alerts: OrderedDict[str, Alert] = OrderedDict()
        self._lock = threading.Lock()

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
        with self._lock:
            alert = self._alerts.get(source_ip)
            created = alert is None
            if created:
                alert = Alert(source_ip=source_ip, created_at=now)
                self._alerts[source_ip] = alert
            else:
                self._alerts.move_to_end(source_ip)

            alert.severity = severity
            alert.risk_score = risk_score
            alert.reason = reason
            alert.timeline = timeline
            alert.summary = summary
            if investigation is not None:
                alert.investigation = investigation
            alert.updated_at = now
            return _snapshot(alert), created

    def get(self, source_ip: str) -> Alert | None:
        with self._lock:
            alert = self._alerts.get(source_ip)
            return _snapshot(alert) if alert is not None else None

    def list_all(self) -> list[Alert]:
        with self._lock:
            return [_snapshot(a) for a in reversed(self._alerts.values())]

    def count(self, severity: Severity | None = None) -> int:
        with self._lock:
            if severity is None:
                return len(self._alerts)
            return sum(1 for a in self._alerts.values() if a.severity is severity)


def _snapshot(alert: Alert) -> Alert:
    return dataclasses.replace(
        alert, investigation=dataclasses.replace(alert.investigation)
    )

"""
backend/pipeline.py

IngestionPipeline: the single entry point that records new evidence.

    submit() → parse_submission → EventStore.append → DetectionEngine.evaluate
             → AlertRegistry.upsert → Ack

Append and evaluate for one source run under that source's lock shard, so
two submissions for the same source can never race on its fail count or
create two alerts. Submissions for sources on other shards run in parallel.

Failure handling:
  - ValidationError: raised before anything is written.
  - StorageError from append(): nothing was recorded; re-raised as-is.
  - StorageError after append(): the event stays recorded and a
    DetectionError is raised so the caller can retry with redetect().
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from .config import Settings
from .engine import Alert, DetectionEngine, Severity
from .errors import DetectionError, StorageError, ValidationError
from .ingest import classify_geo, parse_submission
from .ingest.parser import DEFAULT_PRIVATE_PREFIXES
from .locks import KeyedLock
from .metrics import METRICS
from .models import Ack, AuthEvent, EventStatus, MetricsSnapshot
from .storage import AlertRegistry, EventStore, build_stores

logger = logging.getLogger(__name__)

SIMULATED_ATTACK_IP = "45.33.22.11"


class IngestionPipeline:
    def __init__(
        self,
        store: EventStore,
        registry: AlertRegistry,
        engine: DetectionEngine | None = None,
        private_prefixes: Sequence[str] = DEFAULT_PRIVATE_PREFIXES,
        lock_shards: int = 64,
        recent_limit: int = 50,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.registry = registry
        self.engine = engine or DetectionEngine(store, registry)
        self.private_prefixes = tuple(private_prefixes)
        self.recent_limit = recent_limit
        self._locks = KeyedLock(lock_shards)
        self._clock = clock

    @classmethod
    def from_settings(cls, cfg: Settings) -> "IngestionPipeline":
        store, registry = build_stores(cfg.STORE_BACKEND, cfg.DB_PATH)
        engine = DetectionEngine(
            store,
            registry,
            failure_threshold=cfg.FAILURE_THRESHOLD,
            high_threshold=cfg.HIGH_SEVERITY_THRESHOLD,
            window_seconds=cfg.COUNTING_WINDOW_SECONDS,
        )
        logger.info(
            "IngestionPipeline - backend=%s private_prefixes=%s shards=%d",
            cfg.STORE_BACKEND,
            cfg.PRIVATE_PREFIXES,
            cfg.LOCK_SHARDS,
        )
        return cls(
            store,
            registry,
            engine=engine,
            private_prefixes=cfg.PRIVATE_PREFIXES,
            lock_shards=cfg.LOCK_SHARDS,
            recent_limit=cfg.RECENT_EVENTS_LIMIT,
        )

    # ==================================================================
    # Write path
    # ==================================================================

    def submit(self, username, source_ip, status) -> Ack:
        """
        Validate, record and evaluate one authentication event.

        Raises:
            ValidationError - missing field or unknown status; nothing recorded.
            StorageError    - the event could not be recorded.
            DetectionError  - the event was recorded but detection failed.
        """
        METRICS.events_received.inc()
        now = self._clock()
        try:
            event = parse_submission(
                username, source_ip, status, now, self.private_prefixes
            )
        except ValidationError as exc:
            METRICS.events_rejected.inc()
            logger.info("Submission rejected: %s", exc)
            raise

        with self._locks.hold(event.source_ip):
            stored = self.store.append(event)
            METRICS.events_stored.inc()
            alert, created = self._evaluate_recorded(stored, now)

        return Ack(event=stored, alert=alert, created=created)

    def redetect(self, source_ip: str) -> Alert | None:
        """
        Re-run detection for a source whose earlier detection step failed.

        Raises DetectionError again if the backend is still failing.
        """
        geo_tag = classify_geo(source_ip, self.private_prefixes)
        with self._locks.hold(source_ip):
            history = self.store.events_for(source_ip)
            if not history:
                return None
            alert, _ = self._evaluate_recorded(history[-1], self._clock(), geo_tag)
        return alert

    def simulate_attack(
        self,
        source_ip: str = SIMULATED_ATTACK_IP,
        username: str = "admin",
        failures: int = 5,
    ) -> list[Ack]:
        """Replay a brute-force burst: *failures* failed logins then one success."""
        acks = [
            self.submit(username, source_ip, EventStatus.FAILED.value)
            for _ in range(failures)
        ]
        acks.append(self.submit(username, source_ip, EventStatus.SUCCESS.value))
        logger.info("Simulated attack from %s (%d failures + 1 success)", source_ip, failures)
        return acks

    def _evaluate_recorded(
        self, event: AuthEvent, now: float, geo_tag: str | None = None
    ) -> tuple[Alert | None, bool]:
        try:
            alert, created = self.engine.evaluate(
                event.source_ip, geo_tag or event.geo_tag, now
            )
        except StorageError as exc:
            METRICS.detections_failed.inc()
            logger.error(
                "Detection failed for %s after event %s was stored: %s",
                event.source_ip,
                event.event_id,
                exc,
            )
            raise DetectionError(
                f"event recorded but detection failed: {exc}", event
            ) from exc

        if alert is not None:
            (METRICS.alerts_created if created else METRICS.alerts_updated).inc()
        return alert, created

    # ==================================================================
    # Read path
    # ==================================================================

    def recent_events(self, limit: int | None = None) -> list[AuthEvent]:
        return self.store.recent_events(self.recent_limit if limit is None else limit)

    def list_alerts(self) -> list[Alert]:
        return self.registry.list_all()

    def get_alert(self, source_ip: str) -> Alert | None:
        return self.registry.get(source_ip)

    def timeline_for(self, alert: Alert) -> list[AuthEvent]:
        """Resolve an alert's timeline reference against the live store."""
        return alert.timeline.resolve(self.store)

    def metrics(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            total_events=self.store.count(),
            total_alerts=self.registry.count(),
            critical_alerts=self.registry.count(Severity.CRITICAL),
        )

    def close(self) -> None:
        self.store.close()
        self.registry.close()

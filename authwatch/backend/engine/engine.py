"""
engine/engine.py

DetectionEngine: re-evaluates one source's full history after every event
and keeps its alert in the registry current.

State per source (recomputed from the store each call, never cached):
  Clean    - fail_count < failure_threshold (with a window, an existing alert drops to Low)
  Medium   - failure_threshold <= fail_count < high_threshold
  High     - fail_count >= high_threshold
  Critical - a success followed at least failure_threshold failures

Callers must hold the per-source lock around evaluate(); the engine only
guards its own stats counters.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

from .investigation import build_investigation
from .models import Alert, Detection, Severity, TimelineRef
from .scoring import calculate_risk_score, classify_severity
from .summary import build_reason, generate_summary

if TYPE_CHECKING:
    from ..storage.base import AlertRegistry, EventStore

logger = logging.getLogger(__name__)


class DetectionEngine:
    def __init__(
        self,
        store: "EventStore",
        registry: "AlertRegistry",
        failure_threshold: int = 3,
        high_threshold: int = 6,
        window_seconds: int | None = None,
    ) -> None:
        if window_seconds is not None and window_seconds <= 0:
            raise ValueError(f"window_seconds must be > 0 or None, got {window_seconds}")
        self.store = store
        self.registry = registry
        self.failure_threshold = failure_threshold
        self.high_threshold = high_threshold
        self.window_seconds = window_seconds

        self._stats_lock = threading.Lock()
        self.stats: dict[str, int] = {
            "evaluations": 0,
            "clean": 0,
            "alerts_created": 0,
            "alerts_updated": 0,
        }
        logger.info(
            "DetectionEngine ready: threshold=%d high=%d window=%s",
            failure_threshold,
            high_threshold,
            f"{window_seconds}s" if window_seconds is not None else "all-time",
        )

    # ------------------------------------------------------------------
    # Classification (read-only)
    # ------------------------------------------------------------------

    def _since(self, now: float) -> float | None:
        return now - self.window_seconds if self.window_seconds is not None else None

    def _measure(self, source_ip: str, now: float) -> Detection:
        """Score the source's current state; severity is Low while it is clean."""
        since = self._since(now)
        fail_count = self.store.fail_count_for(source_ip, since=since)
        success_after_fail = self.store.has_success_after_n_failures(
            source_ip, self.failure_threshold, since=since
        )
        severity = classify_severity(
            fail_count,
            success_after_fail,
            failure_threshold=self.failure_threshold,
            high_threshold=self.high_threshold,
        )
        return Detection(
            source_ip=source_ip,
            severity=severity or Severity.LOW,
            fail_count=fail_count,
            success_after_fail=success_after_fail,
            risk_score=calculate_risk_score(fail_count, severity, success_after_fail),
            reason=build_reason(fail_count, success_after_fail),
            summary=generate_summary(source_ip, fail_count, success_after_fail),
        )

    def _is_clean(self, d: Detection) -> bool:
        return d.fail_count < self.failure_threshold

    def detect(self, source_ip: str, now: float | None = None) -> Detection | None:
        """Classify *source_ip* from the store; None while it is clean."""
        now = time.time() if now is None else now
        detection = self._measure(source_ip, now)
        return None if self._is_clean(detection) else detection

    # ------------------------------------------------------------------
    # Evaluate + upsert
    # ------------------------------------------------------------------

    def evaluate(
        self,
        source_ip: str,
        geo_tag: str,
        now: float | None = None,
    ) -> tuple[Alert | None, bool]:
        """
        Run detection for *source_ip* and upsert its alert.

        Returns (alert, created). (None, False) means the source is below
        threshold and has no alert, which is a normal outcome.

        With a counting window, a source that already has an alert can fall
        back below threshold once its burst ages out. The alert is then
        re-scored as Low from the in-window counts; it is never deleted.
        StorageError from either backend propagates unchanged.
        """
        now = time.time() if now is None else now
        self._bump("evaluations")

        detection = self._measure(source_ip, now)
        if self._is_clean(detection):
            # all-time counts never decrease, so a clean source has no alert
            if self.window_seconds is None or self.registry.get(source_ip) is None:
                self._bump("clean")
                logger.debug("Source %r below threshold - no alert", source_ip)
                return None, False
            return self._downgrade(detection, now), False

        alert, created = self.registry.upsert(
            source_ip,
            detection.severity,
            detection.risk_score,
            detection.reason,
            TimelineRef(source_ip),
            detection.summary,
            now,
            investigation=build_investigation(geo_tag, detection.severity),
        )

        if created:
            self._bump("alerts_created")
            logger.warning(
                "NEW ALERT [%s] src=%r risk=%d - %s",
                alert.severity.value,
                source_ip,
                alert.risk_score,
                alert.reason,
            )
        else:
            self._bump("alerts_updated")
            logger.info(
                "Alert updated [%s] src=%r risk=%d fails=%d",
                alert.severity.value,
                source_ip,
                alert.risk_score,
                detection.fail_count,
            )
        return alert, created

    def _downgrade(self, detection: Detection, now: float) -> Alert:
        # investigation=None keeps the enrichment from the last burst
        alert, _ = self.registry.upsert(
            detection.source_ip,
            Severity.LOW,
            detection.risk_score,
            detection.reason,
            TimelineRef(detection.source_ip),
            detection.summary,
            now,
        )
        self._bump("alerts_updated")
        logger.info(
            "Alert aged out of window [Low] src=%r risk=%d fails=%d",
            detection.source_ip,
            alert.risk_score,
            detection.fail_count,
        )
        return alert

    def _bump(self, key: str) -> None:
        # evaluate() runs concurrently for sources on different lock shards
        with self._stats_lock:
            self.stats[key] += 1

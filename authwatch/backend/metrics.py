"""
backend/metrics.py

Process-wide counters for the ingestion pipeline, exposed on /health.

    from authwatch.backend.metrics import METRICS
    METRICS.events_stored.inc()
    METRICS.as_dict()   # {"events_received": 3, ...}
"""

import threading


class Counter:
    """Monotonic integer guarded by its own lock."""

    __slots__ = ("_n", "_lock")

    def __init__(self) -> None:
        self._n = 0
        self._lock = threading.Lock()

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._n += amount

    def reset(self) -> None:
        with self._lock:
            self._n = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._n

    def __repr__(self) -> str:  # pragma: no cover
        return f"Counter({self._n})"


class Metrics:
    # submit() calls, events refused by validation, events appended,
    # detections that raised after their event was stored, alert upserts
    NAMES = (
        "events_received",
        "events_rejected",
        "events_stored",
        "detections_failed",
        "alerts_created",
        "alerts_updated",
    )

    def __init__(self) -> None:
        for name in self.NAMES:
            setattr(self, name, Counter())

    def as_dict(self) -> dict[str, int]:
        return {name: getattr(self, name).value for name in self.NAMES}

    def reset_all(self) -> None:
        for name in self.NAMES:
            getattr(self, name).reset()


METRICS = Metrics()

"""
backend/models.py

Shared dataclasses for the ingestion side of the pipeline.
AuthEvent is the immutable fact every other stage reads; Ack is what
IngestionPipeline.submit() hands back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .engine.models import Alert


EVENT_TYPE_AUTH = "AUTH"

GEO_INTERNAL = "Internal"
GEO_EXTERNAL = "External"


class EventStatus(str, Enum):
    SUCCESS = "success"
    FAILED  = "failed"


# ---------------------------------------------------------------------------
# Stage 1 - Ingestion output
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class AuthEvent:
    """One authentication attempt, as recorded by the event store."""

    timestamp: float
    """Unix epoch timestamp at ingestion."""

    source_ip: str
    """Network address the attempt came from - the correlation key."""

    username: str

    status: EventStatus

    geo_tag: str
    """One of: 'Internal' | 'External'."""

    event_type: str = EVENT_TYPE_AUTH

    event_id: int | None = None
    """Arrival sequence number; assigned by the store on append."""

    @property
    def failed(self) -> bool:
        return self.status is EventStatus.FAILED

    def to_dict(self) -> dict:
        return {
            "event_id":   self.event_id,
            "timestamp":  self.timestamp,
            "source_ip":  self.source_ip,
            "username":   self.username,
            "event_type": self.event_type,
            "status":     self.status.value,
            "geo_tag":    self.geo_tag,
        }


# ---------------------------------------------------------------------------
# Stage 3 - Acknowledgement returned by submit()
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Ack:
    event: AuthEvent
    alert: "Alert | None" = None
    """The alert as it stands after this event, or None below threshold."""

    created: bool = False
    """True when this event created the alert rather than updating it."""

    @property
    def message(self) -> str:
        return "Login event processed"


# ---------------------------------------------------------------------------
# Operator view - headline counts
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class MetricsSnapshot:
    total_events: int
    total_alerts: int
    critical_alerts: int

    def to_dict(self) -> dict:
        return {
            "total_events": self.total_events,
            "total_alerts": self.total_alerts,
            "critical_alerts": self.critical_alerts,
        }

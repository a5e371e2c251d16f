"""
engine/models.py

Data models for the detection engine.

Severity      - the four alert levels used by Alert and the scorer
Detection     - what DetectionEngine derives from one source's history
TimelineRef   - reference to a source's event history (never a copy)
Investigation - static enrichment attached to every alert
Alert         - the one-per-source aggregate kept by the AlertRegistry
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..models import AuthEvent
    from ..storage.base import EventStore

RULE_NAME = "Brute Force Detection Rule"


# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    LOW      = "Low"
    MEDIUM   = "Medium"
    HIGH     = "High"
    CRITICAL = "Critical"


# ---------------------------------------------------------------------------
# Detection - the classified state of one source after an event
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Detection:
    source_ip: str
    severity: Severity
    fail_count: int
    success_after_fail: bool
    risk_score: int
    reason: str
    summary: str

    def __repr__(self) -> str:
        return (
            f"Detection({self.source_ip!r} {self.severity.value} "
            f"fails={self.fail_count} saf={self.success_after_fail} "
            f"risk={self.risk_score})"
        )


# ---------------------------------------------------------------------------
# TimelineRef
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TimelineRef:
    """
    Points at the full arrival-ordered history of one source.

    Holds only the key; resolve() reads the store at call time, so the
    timeline always reflects every event appended so far.
    """

    source_ip: str

    def resolve(self, store: "EventStore") -> list["AuthEvent"]:
        return store.events_for(self.source_ip)


# ---------------------------------------------------------------------------
# Investigation - simulated enrichment
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Investigation:
    geo: str = ""
    reputation: str = ""
    blacklisted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "geo": self.geo,
            "reputation": self.reputation,
            "blacklisted": self.blacklisted,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> "Investigation":
        d = d or {}
        return cls(
            geo=str(d.get("geo", "")),
            reputation=str(d.get("reputation", "")),
            blacklisted=bool(d.get("blacklisted", False)),
        )


# ---------------------------------------------------------------------------
# Alert
# ---------------------------------------------------------------------------

@dataclass
class Alert:
    """
    Brute-force alert for one source IP.

    Created the first time the source reaches the failure threshold and
    updated in place afterwards. source_ip and created_at never change.
    """

    source_ip: str
    severity: Severity = Severity.LOW
    risk_score: int = 0
    """Output of calculate_risk_score(), in [0, 100]."""

    rule: str = RULE_NAME
    reason: str = ""
    summary: str = ""
    timeline: TimelineRef | None = None
    investigation: Investigation = field(default_factory=Investigation)
    created_at: float = 0.0
    updated_at: float = 0.0

    def __post_init__(self) -> None:
        if self.timeline is None:
            self.timeline = TimelineRef(self.source_ip)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_ip":     self.source_ip,
            "severity":      self.severity.value,
            "risk_score":    self.risk_score,
            "rule":          self.rule,
            "reason":        self.reason,
            "summary":       self.summary,
            "investigation": self.investigation.to_dict(),
            "created_at":    self.created_at,
            "updated_at":    self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"Alert({self.source_ip!r} {self.severity.value} "
            f"risk={self.risk_score})"
        )

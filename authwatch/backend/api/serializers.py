"""
api/serializers.py

Pydantic response/request models for the REST layer, plus the
anonymisation transform applied to the operator log view.
"""

from __future__ import annotations

import zlib
from typing import Any

from pydantic import BaseModel

from ..engine.models import Alert
from ..models import AuthEvent, MetricsSnapshot

ANON_IP = "192.168.X.X"
ANON_GEO = "Hidden"


class EventResponse(BaseModel):
    event_id: int | None = None
    timestamp: float
    source_ip: str
    username: str
    event_type: str
    status: str
    geo_tag: str

    @classmethod
    def from_event(cls, e: AuthEvent) -> "EventResponse":
        return cls(**e.to_dict())


class InvestigationResponse(BaseModel):
    geo: str
    reputation: str
    blacklisted: bool


class AlertResponse(BaseModel):
    source_ip: str
    severity: str
    risk_score: int
    rule: str
    reason: str
    summary: str
    investigation: InvestigationResponse
    timeline: list[EventResponse] = []
    created_at: float
    updated_at: float

    @classmethod
    def from_alert(
        cls, alert: Alert, timeline: list[AuthEvent] | None = None
    ) -> "AlertResponse":
        d = alert.to_dict()
        d["timeline"] = [EventResponse.from_event(e) for e in timeline or []]
        return cls(**d)


class SubmitLogRequest(BaseModel):
    # Untyped and optional so a missing or non-string field reaches the core
    # as ValidationError (400) instead of a FastAPI 422.
    username: Any = None
    ip: Any = None
    status: Any = None


class SubmitLogResponse(BaseModel):
    message: str
    event: EventResponse
    alert_created: bool = False
    severity: str | None = None
    risk_score: int | None = None


class SimulateResponse(BaseModel):
    message: str
    source_ip: str
    events_submitted: int
    severity: str | None = None
    risk_score: int | None = None


class LoginRequest(BaseModel):
    username: str | None = None
    password: str | None = None


class LoginResponse(BaseModel):
    token: str
    message: str


class DashboardResponse(BaseModel):
    total_events: int
    total_alerts: int
    critical_alerts: int

    @classmethod
    def from_snapshot(cls, m: MetricsSnapshot) -> "DashboardResponse":
        return cls(**m.to_dict())


def anonymize_event(e: EventResponse) -> EventResponse:
    """
    Mask identifying fields for display.

    The pseudonym is derived from the username, so one user maps to the same
    label on every read instead of a fresh random number per request.
    """
    pseudonym = f"User_{zlib.crc32(e.username.encode('utf-8')) % 1000}"
    return e.model_copy(
        update={"source_ip": ANON_IP, "username": pseudonym, "geo_tag": ANON_GEO}
    )

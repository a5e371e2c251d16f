"""
api/routes/logs.py

POST /submit-log  - ingest one authentication event (unauthenticated)
POST /simulate    - replay a brute-force burst (admin)
GET  /logs        - recent events, newest first, optionally anonymised (admin)
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ...pipeline import SIMULATED_ATTACK_IP, IngestionPipeline
from ..serializers import (
    EventResponse,
    SimulateResponse,
    SubmitLogRequest,
    SubmitLogResponse,
    anonymize_event,
)
from .auth import require_admin

router = APIRouter(tags=["logs"])


def _get_pipeline() -> IngestionPipeline:
    """FastAPI dependency - replaced in tests via app.dependency_overrides."""
    from ..main import get_pipeline
    return get_pipeline()


# Sync handlers run in the threadpool; submit() blocks on the source lock.

@router.post("/submit-log", response_model=SubmitLogResponse)
def submit_log(
    body: SubmitLogRequest,
    pipeline: IngestionPipeline = Depends(_get_pipeline),
) -> SubmitLogResponse:
    """Record one login attempt and run detection for its source."""
    ack = pipeline.submit(body.username, body.ip, body.status)
    return SubmitLogResponse(
        message=ack.message,
        event=EventResponse.from_event(ack.event),
        alert_created=ack.created,
        severity=ack.alert.severity.value if ack.alert else None,
        risk_score=ack.alert.risk_score if ack.alert else None,
    )


@router.post(
    "/simulate",
    response_model=SimulateResponse,
    dependencies=[Depends(require_admin)],
)
def simulate(
    pipeline: IngestionPipeline = Depends(_get_pipeline),
) -> SimulateResponse:
    """Generate five failed logins and one success from the demo attacker."""
    acks = pipeline.simulate_attack(SIMULATED_ATTACK_IP)
    last = acks[-1]
    return SimulateResponse(
        message="Simulated attack logs generated",
        source_ip=SIMULATED_ATTACK_IP,
        events_submitted=len(acks),
        severity=last.alert.severity.value if last.alert else None,
        risk_score=last.alert.risk_score if last.alert else None,
    )


@router.get(
    "/logs",
    response_model=list[EventResponse],
    dependencies=[Depends(require_admin)],
)
def list_logs(
    anonymize: Annotated[bool, Query()] = False,
    limit: Annotated[int | None, Query(ge=1, le=1000)] = None,
    pipeline: IngestionPipeline = Depends(_get_pipeline),
) -> list[EventResponse]:
    """Return recent events, newest first."""
    rows = [EventResponse.from_event(e) for e in pipeline.recent_events(limit)]
    if anonymize:
        rows = [anonymize_event(r) for r in rows]
    return rows

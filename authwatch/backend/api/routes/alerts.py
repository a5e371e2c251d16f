"""
api/routes/alerts.py

GET /alerts              - every alert, most recently updated first
GET /alerts/{source_ip}  - single alert lookup
GET /dashboard           - headline counts for the operator view
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ...pipeline import IngestionPipeline
from ..serializers import AlertResponse, DashboardResponse
from .auth import require_admin

router = APIRouter(tags=["alerts"], dependencies=[Depends(require_admin)])


def _get_pipeline() -> IngestionPipeline:
    from ..main import get_pipeline
    return get_pipeline()


@router.get("/alerts", response_model=list[AlertResponse])
def list_alerts(
    pipeline: IngestionPipeline = Depends(_get_pipeline),
) -> list[AlertResponse]:
    """Return all alerts with their timelines expanded."""
    return [
        AlertResponse.from_alert(a, pipeline.timeline_for(a))
        for a in pipeline.list_alerts()
    ]


@router.get("/alerts/{source_ip}", response_model=AlertResponse)
def get_alert(
    source_ip: str,
    pipeline: IngestionPipeline = Depends(_get_pipeline),
) -> AlertResponse:
    alert = pipeline.get_alert(source_ip)
    if alert is None:
        raise HTTPException(status_code=404, detail=f"No alert for {source_ip!r}")
    return AlertResponse.from_alert(alert, pipeline.timeline_for(alert))


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    pipeline: IngestionPipeline = Depends(_get_pipeline),
) -> DashboardResponse:
    return DashboardResponse.from_snapshot(pipeline.metrics())

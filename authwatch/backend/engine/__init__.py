"""engine/__init__.py"""
from .engine import DetectionEngine
from .models import Alert, Detection, Investigation, Severity, TimelineRef
from .scoring import calculate_risk_score, classify_severity
from .summary import build_reason, generate_summary

__all__ = [
    "DetectionEngine",
    "Alert",
    "Detection",
    "Investigation",
    "Severity",
    "TimelineRef",
    "build_reason",
    "calculate_risk_score",
    "classify_severity",
    "generate_summary",
]

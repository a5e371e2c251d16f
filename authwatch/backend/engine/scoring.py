"""
engine/scoring.py

Risk score and severity classification for brute-force detections.

    score = min(100, fail_count * 10 + severity bonus + 20 if success-after-fail)

Both functions are pure: the same inputs always give the same output.
"""

from __future__ import annotations

from .models import Severity

MAX_SCORE = 100
PER_FAILURE_POINTS = 10
SUCCESS_AFTER_FAIL_BONUS = 20

SEVERITY_BONUS: dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 20,
    Severity.HIGH: 40,
    Severity.CRITICAL: 60,
}


def calculate_risk_score(
    fail_count: int,
    severity: Severity | None,
    success_after_fail: bool,
) -> int:
    """
    Map detection state to an integer score in [0, 100].

    A ``None`` severity is a clean source and earns no bonus, same as Low.
    """
    if fail_count < 0:
        raise ValueError(f"fail_count must be >= 0, got {fail_count}")
    score = fail_count * PER_FAILURE_POINTS
    score += SEVERITY_BONUS.get(severity, 0) if severity is not None else 0
    if success_after_fail:
        score += SUCCESS_AFTER_FAIL_BONUS
    return min(score, MAX_SCORE)


def classify_severity(
    fail_count: int,
    success_after_fail: bool,
    failure_threshold: int = 3,
    high_threshold: int = 6,
) -> Severity | None:
    """
    Return the severity for a source, or None while it is still clean.

    Critical wins over the count thresholds whenever a success followed
    the failures.
    """
    if fail_count < failure_threshold:
        return None
    if success_after_fail:
        return Severity.CRITICAL
    if fail_count >= high_threshold:
        return Severity.HIGH
    return Severity.MEDIUM

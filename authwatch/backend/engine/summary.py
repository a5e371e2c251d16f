"""
engine/summary.py

Fixed narrative templates for alert summaries and reasons.
"""

from __future__ import annotations

_SUMMARY_SUCCESS_AFTER_FAIL = (
    "Multiple failed login attempts from IP {ip} followed by a successful login. "
    "This matches a brute-force attack pattern. Immediate attention recommended."
)

_SUMMARY_REPEATED_FAILURES = (
    "Repeated failed login attempts detected from IP {ip}. Monitoring advised."
)


def generate_summary(source_ip: str, fail_count: int, success_after_fail: bool) -> str:
    """Pick the summary template for a detection. fail_count does not change the text."""
    template = (
        _SUMMARY_SUCCESS_AFTER_FAIL if success_after_fail else _SUMMARY_REPEATED_FAILURES
    )
    return template.format(ip=source_ip)


def build_reason(fail_count: int, success_after_fail: bool) -> str:
    reason = f"{fail_count} failed login attempts from same IP"
    if success_after_fail:
        reason += " followed by a successful login"
    return reason

"""
engine/investigation.py

Simulated threat-intel enrichment for alerts.

There is no reputation feed behind this: the labels are derived from the
source's geo tag and the alert severity so the operator view has something
stable to show.
"""

from __future__ import annotations

from ..models import GEO_INTERNAL
from .models import Investigation, Severity

_REPUTATION: dict[tuple[bool, Severity], str] = {
    (True, Severity.MEDIUM):    "Internal host",
    (True, Severity.HIGH):      "Internal host, possible compromised account",
    (True, Severity.CRITICAL):  "Internal host, compromised account",
    (False, Severity.MEDIUM):   "Suspicious",
    (False, Severity.HIGH):     "Known brute-force source",
    (False, Severity.CRITICAL): "Malicious",
}


def build_investigation(geo_tag: str, severity: Severity) -> Investigation:
    """Blacklisting only applies to external sources that reached Critical."""
    internal = geo_tag == GEO_INTERNAL
    return Investigation(
        geo=geo_tag,
        reputation=_REPUTATION.get((internal, severity), "Unknown"),
        blacklisted=(not internal) and severity is Severity.CRITICAL,
    )

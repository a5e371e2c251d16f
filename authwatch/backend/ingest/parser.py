"""
ingest/parser.py

Validates a raw login submission and turns it into an AuthEvent.

Design principles:
  - Pure and synchronous: no I/O, no store access. A submission that fails
    here has not touched any state.
  - Fields are stripped; status is case-insensitive ("FAILED" == "failed").
  - The source identity is not required to be a parseable IP address, only
    a non-empty string. Geo classification copes with both.

Geo classification:
  - 'Internal' : source matches one of the configured private prefixes
  - 'External' : everything else
  A prefix containing '/' is read as a CIDR network ("172.16.0.0/12");
  anything else is a plain string prefix ("10.", "192.").
"""

from __future__ import annotations

import ipaddress
from typing import Any, Iterable, Sequence

from ..errors import ValidationError
from ..models import GEO_EXTERNAL, GEO_INTERNAL, AuthEvent, EventStatus


DEFAULT_PRIVATE_PREFIXES: tuple[str, ...] = ("192.", "10.")


def _in_network(source_ip: str, cidr: str) -> bool:
    try:
        addr = ipaddress.ip_address(source_ip)
        net = ipaddress.ip_network(cidr, strict=False)
    except ValueError:
        return False  # non-IP identity or malformed CIDR: no match
    return addr.version == net.version and addr in net


def classify_geo(
    source_ip: str,
    private_prefixes: Iterable[str] = DEFAULT_PRIVATE_PREFIXES,
) -> str:
    """Return 'Internal' or 'External' for *source_ip*."""
    for prefix in private_prefixes:
        if "/" in prefix:
            if _in_network(source_ip, prefix):
                return GEO_INTERNAL
        elif source_ip.startswith(prefix):
            return GEO_INTERNAL
    return GEO_EXTERNAL


def _clean(name: str, value: Any) -> str:
    if value is None:
        raise ValidationError(f"missing field: {name}", field=name)
    if not isinstance(value, str):
        raise ValidationError(f"field {name} must be a string", field=name)
    value = value.strip()
    if not value:
        raise ValidationError(f"missing field: {name}", field=name)
    return value


def parse_status(value: Any) -> EventStatus:
    raw = _clean("status", value).lower()
    try:
        return EventStatus(raw)
    except ValueError:
        raise ValidationError(
            f"status must be 'success' or 'failed', got {raw!r}", field="status"
        ) from None


def parse_submission(
    username: Any,
    source_ip: Any,
    status: Any,
    timestamp: float,
    private_prefixes: Sequence[str] = DEFAULT_PRIVATE_PREFIXES,
) -> AuthEvent:
    """
    Validate and normalise one submission.

    Raises:
        ValidationError - a field is absent/blank or status is unrecognised.
    """
    user = _clean("username", username)
    ip = _clean("source_ip", source_ip)
    event_status = parse_status(status)

    return AuthEvent(
        timestamp=timestamp,
        source_ip=ip,
        username=user,
        status=event_status,
        geo_tag=classify_geo(ip, private_prefixes),
    )

"""
storage/repository.py

SQLite-backed EventStore and AlertRegistry.

Both take a shared Database. Every sqlite3.Error is re-raised as
StorageError so the pipeline can tell a failed append from a failed
detection step; nothing is swallowed here.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import sqlite3
from typing import Any

from ..engine.models import RULE_NAME, Alert, Investigation, Severity, TimelineRef
from ..errors import StorageError
from ..models import AuthEvent, EventStatus
from .base import AlertRegistry, EventStore
from .database import Database

logger = logging.getLogger(__name__)


class SqliteEventStore(EventStore):
    def __init__(self, db: Database) -> None:
        self._db = db

    # ==================================================================
    # Write methods
    # ==================================================================

    def append(self, event: AuthEvent) -> AuthEvent:
        try:
            with self._db.transaction() as conn:
                cur = conn.execute(
                    """
                    INSERT INTO events (
                        timestamp, source_ip, username, event_type, status, geo_tag
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        event.timestamp,
                        event.source_ip,
                        event.username,
                        event.event_type,
                        event.status.value,
                        event.geo_tag,
                    ),
                )
                event_id = cur.lastrowid
        except sqlite3.Error as exc:
            logger.error("append DB write failed for %s: %s", event.source_ip, exc)
            raise StorageError(f"could not record event: {exc}") from exc
        return _replace_id(event, event_id)

    # ==================================================================
    # Read methods
    # ==================================================================

    def fail_count_for(self, source_ip: str, since: float | None = None) -> int:
        where, params = _source_where(source_ip, since)
        row = self._fetchone(
            f"SELECT COUNT(*) FROM events {where} AND status = 'failed'",
            tuple(params),
        )
        return row[0] if row else 0

    def has_success_after_n_failures(
        self, source_ip: str, n: int, since: float | None = None
    ) -> bool:
        where, params = _source_where(source_ip, since)
        if n <= 0:
            row = self._fetchone(
                f"SELECT EXISTS(SELECT 1 FROM events {where} AND status = 'success')",
                tuple(params),
            )
            return bool(row[0])

        # id of the n-th failure; any later success qualifies
        row = self._fetchone(
            f"""
            SELECT EXISTS(
                SELECT 1 FROM events {where} AND status = 'success'
                AND id > (
                    SELECT id FROM events {where} AND status = 'failed'
                    ORDER BY id LIMIT 1 OFFSET ?
                )
            )
            """,
            tuple(params + params + [n - 1]),
        )
        return bool(row[0])

    def recent_events(self, limit: int = 50) -> list[AuthEvent]:
        if limit <= 0:
            return []
        rows = self._fetchall(
            "SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)
        )
        return [self._row_to_event(r) for r in rows]

    def events_for(self, source_ip: str) -> list[AuthEvent]:
        rows = self._fetchall(
            "SELECT * FROM events WHERE source_ip = ? ORDER BY id", (source_ip,)
        )
        return [self._row_to_event(r) for r in rows]

    def count(self) -> int:
        row = self._fetchone("SELECT COUNT(*) FROM events")
        return row[0] if row else 0

    def close(self) -> None:
        self._db.close()

    # ==================================================================
    # Internal helpers
    # ==================================================================

    def _fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        try:
            return self._db.fetchone(sql, params)
        except sqlite3.Error as exc:
            raise StorageError(f"event query failed: {exc}") from exc

    def _fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            return self._db.fetchall(sql, params)
        except sqlite3.Error as exc:
            raise StorageError(f"event query failed: {exc}") from exc

    @staticmethod
    def _row_to_event(row: Any) -> AuthEvent:
        return AuthEvent(
            timestamp=row["timestamp"],
            source_ip=row["source_ip"],
            username=row["username"],
            status=EventStatus(row["status"]),
            geo_tag=row["geo_tag"],
            event_type=row["event_type"],
            event_id=row["id"],
        )


class SqliteAlertRegistry(AlertRegistry):
    def __init__(self, db: Database) -> None:
        self._db = db

    def upsert(
        self,
        source_ip: str,
        severity: Severity,
        risk_score: int,
        reason: str,
        timeline: TimelineRef,
        summary: str,
        now: float,
        investigation: Investigation | None = None,
    ) -> tuple[Alert, bool]:
        try:
            with self._db.transaction() as conn:
                existing = conn.execute(
                    "SELECT investigation FROM alerts WHERE source_ip = ?",
                    (source_ip,),
                ).fetchone()
                created = existing is None
                if investigation is None:
                    investigation = Investigation.from_dict(
                        _loads(existing["investigation"]) if existing else None
                    )

                # created_at is only written by the INSERT branch
                conn.execute(
                    """
                    INSERT INTO alerts (
                        source_ip, severity, risk_score, rule, reason, summary,
                        investigation, created_at, updated_at, update_seq
                    ) VALUES (
                        ?, ?, ?, ?, ?, ?, ?, ?, ?,
                        (SELECT COALESCE(MAX(update_seq), 0) + 1 FROM alerts)
                    )
                    ON CONFLICT(source_ip) DO UPDATE SET
                        severity      = excluded.severity,
                        risk_score    = excluded.risk_score,
                        reason        = excluded.reason,
                        summary       = excluded.summary,
                        investigation = excluded.investigation,
                        updated_at    = excluded.updated_at,
                        update_seq    = excluded.update_seq
                    """,
                    (
                        source_ip,
                        severity.value,
                        risk_score,
                        RULE_NAME,
                        reason,
                        summary,
                        json.dumps(investigation.to_dict()),
                        now,
                        now,
                    ),
                )
                row = conn.execute(
                    "SELECT * FROM alerts WHERE source_ip = ?", (source_ip,)
                ).fetchone()
        except sqlite3.Error as exc:
            logger.error("upsert DB write failed for %s: %s", source_ip, exc)
            raise StorageError(f"could not upsert alert for {source_ip}: {exc}") from exc

        alert = self._row_to_alert(row)
        alert.timeline = timeline
        return alert, created

    def get(self, source_ip: str) -> Alert | None:
        row = self._fetchone("SELECT * FROM alerts WHERE source_ip = ?", (source_ip,))
        return self._row_to_alert(row) if row else None

    def list_all(self) -> list[Alert]:
        rows = self._fetchall("SELECT * FROM alerts ORDER BY update_seq DESC")
        return [self._row_to_alert(r) for r in rows]

    def count(self, severity: Severity | None = None) -> int:
        if severity is None:
            row = self._fetchone("SELECT COUNT(*) FROM alerts")
        else:
            row = self._fetchone(
                "SELECT COUNT(*) FROM alerts WHERE severity = ?", (severity.value,)
            )
        return row[0] if row else 0

    def close(self) -> None:
        self._db.close()

    def _fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        try:
            return self._db.fetchone(sql, params)
        except sqlite3.Error as exc:
            raise StorageError(f"alert query failed: {exc}") from exc

    def _fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            return self._db.fetchall(sql, params)
        except sqlite3.Error as exc:
            raise StorageError(f"alert query failed: {exc}") from exc

    @staticmethod
    def _row_to_alert(row: Any) -> Alert:
        return Alert(
            source_ip=row["source_ip"],
            severity=Severity(row["severity"]),
            risk_score=row["risk_score"],
            rule=row["rule"],
            reason=row["reason"],
            summary=row["summary"],
            investigation=Investigation.from_dict(_loads(row["investigation"])),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------

def _source_where(source_ip: str, since: float | None) -> tuple[str, list[Any]]:
    clauses = ["source_ip = ?"]
    params: list[Any] = [source_ip]
    if since is not None:
        clauses.append("timestamp >= ?")
        params.append(since)
    return "WHERE " + " AND ".join(clauses), params


def _loads(raw: str | None) -> dict:
    try:
        return json.loads(raw or "{}")
    except (TypeError, json.JSONDecodeError):
        return {}


def _replace_id(event: AuthEvent, event_id: int | None) -> AuthEvent:
    return dataclasses.replace(event, event_id=event_id)

"""IncidentStore — SQLite persistence for network incidents."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from pingwatch.core.types import (
    DiagnosticTrace,
    Incident,
    IncidentStatistics,
    ProbeResult,
    TraceHop,
)
from pingwatch.storage.exceptions import StoreUnavailableError, StoreWriteError

logger = structlog.stdlib.get_logger()

MEMORY_PATH = ":memory:"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS incidents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    host TEXT NOT NULL,
    timestamp REAL NOT NULL,
    resolved INTEGER NOT NULL DEFAULT 0,

    -- Probe
    probe_success INTEGER NOT NULL,
    probe_latency_ms REAL,
    probe_error TEXT,
    probe_timestamp REAL NOT NULL,

    -- Trace (NULL trace_success means no trace was captured)
    trace_success INTEGER,
    trace_error TEXT,
    trace_hops TEXT,
    trace_timestamp REAL,

    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_incidents_timestamp ON incidents(timestamp);
CREATE INDEX IF NOT EXISTS idx_incidents_host_timestamp ON incidents(host, timestamp);
CREATE INDEX IF NOT EXISTS idx_incidents_resolved ON incidents(resolved);
"""

_ORDER = "ORDER BY timestamp DESC, id DESC"


def _encode_hops(hops: list[TraceHop]) -> str:
    return json.dumps([hop.model_dump() for hop in hops])


def _decode_hops(raw: str | None, incident_id: int) -> list[TraceHop]:
    if not raw:
        return []
    try:
        return [TraceHop(**item) for item in json.loads(raw)]
    except (ValueError, TypeError):
        logger.warning("trace_hops_undecodable", incident_id=incident_id)
        return []


class IncidentStore:
    """Durable, queryable incident history backed by one SQLite table.

    Reads never raise: a storage failure is logged and degrades to an
    empty result. ``save_incident`` raises ``StoreWriteError`` because a
    lost incident is a real fault.

    Usage::

        store = IncidentStore("./pingwatch.db")
        incident_id = store.save_incident(incident)
        store.mark_incident_resolved(incident_id)
        store.close()
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._closed = False
        try:
            if self._db_path != MEMORY_PATH:
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self._db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except (OSError, sqlite3.Error) as exc:
            logger.error("store_open_failed", db_path=self._db_path, error=str(exc))
            raise StoreUnavailableError(f"cannot open incident store at {self._db_path}") from exc
        logger.info("store_opened", db_path=self._db_path)

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Writes ──────────────────────────────────────────────────

    def save_incident(self, incident: Incident) -> int:
        """Insert an incident and return its newly assigned id.

        Any ``id`` already set on ``incident`` is ignored.

        Raises:
            StoreWriteError: The row could not be written.
        """
        probe = incident.probe
        trace = incident.trace
        values = (
            incident.host,
            incident.timestamp,
            int(incident.resolved),
            int(probe.success),
            probe.latency_ms,
            probe.error,
            probe.timestamp,
            None if trace is None else int(trace.success),
            None if trace is None else trace.error,
            None if trace is None else _encode_hops(trace.hops),
            None if trace is None else trace.timestamp,
        )
        try:
            cur = self._conn.execute(
                """
                INSERT INTO incidents (
                    host, timestamp, resolved,
                    probe_success, probe_latency_ms, probe_error, probe_timestamp,
                    trace_success, trace_error, trace_hops, trace_timestamp
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                values,
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            logger.error("incident_save_failed", host=incident.host, error=str(exc))
            raise StoreWriteError(f"failed to save incident for {incident.host}") from exc

        incident_id = int(cur.lastrowid)
        logger.debug("incident_saved", incident_id=incident_id, host=incident.host)
        return incident_id

    def mark_incident_resolved(self, incident_id: int) -> bool:
        """Resolve an incident.

        Returns True only when the row flipped from unresolved to resolved,
        so a second call for the same id returns False.
        """
        try:
            cur = self._conn.execute(
                "UPDATE incidents SET resolved = 1 WHERE id = ? AND resolved = 0",
                (incident_id,),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            logger.error("incident_resolve_failed", incident_id=incident_id, error=str(exc))
            return False
        return cur.rowcount > 0

    def clear_all_incidents(self) -> bool:
        """Delete every incident. Administrative; not used by the monitor."""
        try:
            cur = self._conn.execute("DELETE FROM incidents")
            self._conn.commit()
        except sqlite3.Error as exc:
            logger.error("incidents_clear_failed", error=str(exc))
            return False
        logger.info("incidents_cleared", count=cur.rowcount)
        return True

    # ── Reads ───────────────────────────────────────────────────

    def get_recent_incidents(self, limit: int = 50) -> list[Incident]:
        return self._select(f"SELECT * FROM incidents {_ORDER} LIMIT ?", (max(limit, 0),))

    def get_incidents_by_host(self, host: str, limit: int = 20) -> list[Incident]:
        return self._select(
            f"SELECT * FROM incidents WHERE host = ? {_ORDER} LIMIT ?",
            (host, max(limit, 0)),
        )

    def get_unresolved_incidents(self) -> list[Incident]:
        return self._select(f"SELECT * FROM incidents WHERE resolved = 0 {_ORDER}", ())

    def get_latest_incident(self) -> Incident | None:
        rows = self._select(f"SELECT * FROM incidents {_ORDER} LIMIT 1", ())
        return rows[0] if rows else None

    def get_affected_hosts(self, limit: int = 1000) -> list[str]:
        """Distinct hosts among the ``limit`` most recent incidents, newest first."""
        try:
            rows = self._conn.execute(
                f"""
                SELECT host, MAX(timestamp) AS last_seen FROM (
                    SELECT host, timestamp FROM incidents {_ORDER} LIMIT ?
                )
                GROUP BY host
                ORDER BY last_seen DESC
                """,
                (max(limit, 0),),
            ).fetchall()
        except sqlite3.Error as exc:
            logger.error("hosts_fetch_failed", error=str(exc))
            return []
        return [row["host"] for row in rows]

    def get_statistics(self) -> IncidentStatistics:
        try:
            row = self._conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(CASE WHEN resolved = 0 THEN 1 ELSE 0 END), 0) AS unresolved,
                    COUNT(DISTINCT host) AS hosts
                FROM incidents
                """
            ).fetchone()
        except sqlite3.Error as exc:
            logger.error("statistics_fetch_failed", error=str(exc))
            return IncidentStatistics()
        return IncidentStatistics(
            total_incidents=row["total"],
            unresolved_incidents=row["unresolved"],
            hosts_affected=row["hosts"],
        )

    # ── Lifecycle ───────────────────────────────────────────────

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._conn.close()
        logger.info("store_closed", db_path=self._db_path)

    def __enter__(self) -> IncidentStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ── Internal ────────────────────────────────────────────────

    def _select(self, query: str, params: tuple[Any, ...]) -> list[Incident]:
        try:
            rows = self._conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            logger.error("incidents_fetch_failed", error=str(exc))
            return []

        incidents: list[Incident] = []
        for row in rows:
            try:
                incidents.append(self._row_to_incident(row))
            except ValidationError as exc:
                logger.warning("incident_row_invalid", incident_id=row["id"], error=str(exc))
        return incidents

    @staticmethod
    def _row_to_incident(row: sqlite3.Row) -> Incident:
        probe = ProbeResult(
            host=row["host"],
            success=bool(row["probe_success"]),
            latency_ms=row["probe_latency_ms"],
            error=row["probe_error"],
            timestamp=row["probe_timestamp"],
        )

        trace: DiagnosticTrace | None = None
        if row["trace_success"] is not None:
            trace = DiagnosticTrace(
                host=row["host"],
                hops=_decode_hops(row["trace_hops"], row["id"]),
                success=bool(row["trace_success"]),
                error=row["trace_error"],
                timestamp=row["trace_timestamp"] if row["trace_timestamp"] is not None else row["timestamp"],
            )

        return Incident(
            id=row["id"],
            host=row["host"],
            timestamp=row["timestamp"],
            resolved=bool(row["resolved"]),
            probe=probe,
            trace=trace,
        )

"""Domain types for probes, traces, and incidents."""

from __future__ import annotations

import time

from pydantic import BaseModel, Field, model_validator


class ProbeResult(BaseModel):
    """Outcome of one reachability probe (after retries)."""

    host: str
    success: bool
    latency_ms: float | None = Field(default=None, ge=0)
    error: str | None = None
    timestamp: float = Field(default_factory=time.time)

    @model_validator(mode="after")
    def _latency_xor_error(self) -> ProbeResult:
        if (self.latency_ms is None) == (self.error is None):
            raise ValueError("exactly one of latency_ms or error must be set")
        if self.success != (self.latency_ms is not None):
            raise ValueError("success must be true iff latency_ms is set")
        return self

    @classmethod
    def ok(cls, host: str, latency_ms: float, timestamp: float | None = None) -> ProbeResult:
        return cls(
            host=host,
            success=True,
            latency_ms=latency_ms,
            timestamp=time.time() if timestamp is None else timestamp,
        )

    @classmethod
    def failed(cls, host: str, error: str, timestamp: float | None = None) -> ProbeResult:
        return cls(
            host=host,
            success=False,
            error=error,
            timestamp=time.time() if timestamp is None else timestamp,
        )


class TraceHop(BaseModel):
    """A single hop on a diagnostic path."""

    hop: int = Field(ge=1)
    address: str | None = None
    hostname: str | None = None
    rtt_ms: float | None = Field(default=None, ge=0)
    timed_out: bool = False

    @model_validator(mode="after")
    def _timed_out_is_empty(self) -> TraceHop:
        if self.timed_out and (
            self.address is not None
            or self.hostname is not None
            or self.rtt_ms is not None
        ):
            raise ValueError("a timed-out hop carries no address, hostname or rtt")
        return self


class DiagnosticTrace(BaseModel):
    """Path trace captured when a probe fails.

    ``success`` describes the trace itself; a trace can fail while the
    probe that triggered it failed too.
    """

    host: str
    hops: list[TraceHop] = Field(default_factory=list)
    success: bool
    error: str | None = None
    timestamp: float = Field(default_factory=time.time)

    @model_validator(mode="after")
    def _hops_ordered(self) -> DiagnosticTrace:
        for prev, cur in zip(self.hops, self.hops[1:]):
            if cur.hop < prev.hop:
                raise ValueError("hop indices must be non-decreasing")
        return self

    def last_reachable_hop(self) -> TraceHop | None:
        """Last hop that answered with an address, scanning from the end."""
        for hop in reversed(self.hops):
            if not hop.timed_out and hop.address:
                return hop
        return None


class Incident(BaseModel):
    """Durable record of one failed probe and its diagnostic evidence.

    ``id`` is assigned by the store; it is ``None`` until saved.
    """

    id: int | None = None
    host: str
    timestamp: float = Field(default_factory=time.time)
    resolved: bool = False
    probe: ProbeResult
    trace: DiagnosticTrace | None = None


class IncidentStatistics(BaseModel):
    """Aggregate counts over the incident table."""

    total_incidents: int = 0
    unresolved_incidents: int = 0
    hosts_affected: int = 0


# ── Monitor Types ───────────────────────────────────────────────


class CheckOutcome(BaseModel):
    """Result of checking one host within a cycle."""

    host: str
    success: bool
    latency_ms: float | None = None
    error: str | None = None
    incident_id: int | None = None
    last_reachable_hop: TraceHop | None = None
    resolved_incident_ids: list[int] = Field(default_factory=list)


class CycleSummary(BaseModel):
    """Aggregate view of one check cycle across all hosts."""

    check_id: str
    started_at: float
    hosts_checked: int = 0
    reachable: int = 0
    unreachable: int = 0
    mean_latency_ms: float | None = None
    outcomes: list[CheckOutcome] = Field(default_factory=list)

    @classmethod
    def from_outcomes(
        cls, check_id: str, started_at: float, outcomes: list[CheckOutcome],
    ) -> CycleSummary:
        latencies = [
            o.latency_ms for o in outcomes if o.success and o.latency_ms is not None
        ]
        reachable = sum(1 for o in outcomes if o.success)
        return cls(
            check_id=check_id,
            started_at=started_at,
            hosts_checked=len(outcomes),
            reachable=reachable,
            unreachable=len(outcomes) - reachable,
            mean_latency_ms=sum(latencies) / len(latencies) if latencies else None,
            outcomes=outcomes,
        )

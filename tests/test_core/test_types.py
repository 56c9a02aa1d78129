"""Tests for pingwatch/core/types.py — invariants on probes, hops, traces."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pingwatch.core.types import (
    CheckOutcome,
    CycleSummary,
    DiagnosticTrace,
    ProbeResult,
    TraceHop,
)


class TestProbeResult:
    def test_ok_factory(self) -> None:
        r = ProbeResult.ok("h", 12.5, timestamp=1.0)
        assert r.success is True
        assert r.latency_ms == 12.5
        assert r.error is None

    def test_failed_factory(self) -> None:
        r = ProbeResult.failed("h", "unreachable")
        assert r.success is False
        assert r.latency_ms is None

    def test_both_latency_and_error_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProbeResult(host="h", success=True, latency_ms=1.0, error="x")

    def test_neither_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProbeResult(host="h", success=False)

    def test_success_must_match_latency(self) -> None:
        with pytest.raises(ValidationError):
            ProbeResult(host="h", success=False, latency_ms=3.0)

    def test_negative_latency_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProbeResult.ok("h", -1.0)


class TestTraceHop:
    def test_timed_out_hop(self) -> None:
        hop = TraceHop(hop=3, timed_out=True)
        assert hop.address is None

    def test_timed_out_hop_with_address_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TraceHop(hop=3, address="10.0.0.1", timed_out=True)

    def test_hop_index_starts_at_one(self) -> None:
        with pytest.raises(ValidationError):
            TraceHop(hop=0)


class TestDiagnosticTrace:
    def test_decreasing_hops_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DiagnosticTrace(
                host="h",
                success=True,
                hops=[TraceHop(hop=2, address="10.0.0.2"), TraceHop(hop=1, address="10.0.0.1")],
            )

    def test_last_reachable_hop_skips_timeouts_and_addressless(self) -> None:
        trace = DiagnosticTrace(
            host="h",
            success=True,
            hops=[
                TraceHop(hop=1, address="192.168.1.1", rtt_ms=1.0),
                TraceHop(hop=2, address="10.0.0.1", rtt_ms=5.0),
                TraceHop(hop=3, hostname="name.only.example", rtt_ms=7.0),
                TraceHop(hop=4, timed_out=True),
            ],
        )
        hop = trace.last_reachable_hop()
        assert hop is not None
        assert hop.hop == 2
        assert hop.address == "10.0.0.1"

    def test_last_reachable_hop_none_when_all_timed_out(self) -> None:
        trace = DiagnosticTrace(
            host="h", success=True, hops=[TraceHop(hop=1, timed_out=True)],
        )
        assert trace.last_reachable_hop() is None

    def test_failed_trace_has_no_hops(self) -> None:
        trace = DiagnosticTrace(host="h", success=False, error="boom")
        assert trace.hops == []
        assert trace.last_reachable_hop() is None


class TestCycleSummary:
    def test_counts_and_mean(self) -> None:
        outcomes = [
            CheckOutcome(host="a", success=True, latency_ms=10.0),
            CheckOutcome(host="b", success=True, latency_ms=30.0),
            CheckOutcome(host="c", success=False, error="down"),
        ]
        s = CycleSummary.from_outcomes("abc123", 1.0, outcomes)
        assert s.hosts_checked == 3
        assert s.reachable == 2
        assert s.unreachable == 1
        assert s.mean_latency_ms == pytest.approx(20.0)

    def test_mean_absent_without_successes(self) -> None:
        s = CycleSummary.from_outcomes(
            "abc123", 1.0, [CheckOutcome(host="a", success=False, error="down")],
        )
        assert s.mean_latency_ms is None
        assert s.unreachable == 1

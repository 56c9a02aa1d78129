"""Tests for the Prober retry policy and the subprocess-backed SystemProber."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pingwatch.core.types import DiagnosticTrace, ProbeResult
from pingwatch.probe.base import Prober
from pingwatch.probe.system import SystemProber

# ── Helpers ─────────────────────────────────────────────────────


class ScriptedProber(Prober):
    """Returns queued ping results in order."""

    def __init__(self, results: list[ProbeResult]) -> None:
        super().__init__(retry_delay_secs=0)
        self._results = list(results)
        self.calls: list[tuple[str, int]] = []

    async def ping_once(self, host: str, timeout_ms: int) -> ProbeResult:
        self.calls.append((host, timeout_ms))
        return self._results.pop(0)

    async def trace(self, host: str, timeout_ms: int) -> DiagnosticTrace:
        return DiagnosticTrace(host=host, success=False, error="not traced")


def _fail(host: str = "h", error: str = "timeout") -> ProbeResult:
    return ProbeResult.failed(host, error)


def _ok(host: str = "h", latency: float = 5.0) -> ProbeResult:
    return ProbeResult.ok(host, latency)


def _proc(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock(return_value=returncode)
    return proc


# ── Retry Policy ────────────────────────────────────────────────


class TestRetryPolicy:
    async def test_first_success_returns_immediately(self) -> None:
        prober = ScriptedProber([_ok()])
        result = await prober.ping("h", retries=3, timeout_ms=1000)
        assert result.success is True
        assert len(prober.calls) == 1

    async def test_success_after_failures(self) -> None:
        prober = ScriptedProber([_fail(), _fail(), _ok(latency=9.0)])
        result = await prober.ping("h", retries=3, timeout_ms=1000)
        assert result.latency_ms == 9.0
        assert len(prober.calls) == 3

    async def test_all_attempts_fail_returns_last(self) -> None:
        prober = ScriptedProber([_fail(error="a"), _fail(error="b"), _fail(error="c")])
        result = await prober.ping("10.0.0.1", retries=2, timeout_ms=1000)
        assert result.success is False
        assert result.error == "c"
        assert len(prober.calls) == 3

    async def test_sleeps_between_attempts_only(self) -> None:
        prober = ScriptedProber([_fail(), _fail(), _fail()])
        with patch("pingwatch.probe.base.asyncio.sleep", new=AsyncMock()) as sleep:
            await prober.ping("h", retries=2, timeout_ms=1000)
        assert sleep.await_count == 2

    async def test_default_retry_delay(self) -> None:
        assert SystemProber().retry_delay_secs == 1.0


# ── SystemProber ────────────────────────────────────────────────


class TestSystemProberPing:
    async def test_parses_latency(self) -> None:
        proc = _proc(stdout=b"64 bytes from 1.1.1.1: icmp_seq=1 ttl=57 time=3.4 ms\n")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)) as spawn:
            result = await SystemProber().ping_once("1.1.1.1", timeout_ms=2500)
        assert result.success is True
        assert result.latency_ms == 3.4
        argv = spawn.call_args.args
        assert argv[:5] == ("ping", "-c", "1", "-W", "2")
        assert argv[-1] == "1.1.1.1"

    async def test_falls_back_to_wall_time(self) -> None:
        proc = _proc(stdout=b"reply without timing\n")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
            result = await SystemProber().ping_once("h", timeout_ms=1000)
        assert result.success is True
        assert result.latency_ms is not None
        assert result.latency_ms >= 0

    async def test_nonzero_exit_is_failure(self) -> None:
        proc = _proc(
            returncode=1,
            stdout=b"1 packets transmitted, 0 received, 100% packet loss\n",
        )
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
            result = await SystemProber().ping_once("h", timeout_ms=1000)
        assert result.success is False
        assert "100% packet loss" in (result.error or "")

    async def test_missing_binary_is_failure(self) -> None:
        spawn = AsyncMock(side_effect=FileNotFoundError("ping"))
        with patch("asyncio.create_subprocess_exec", new=spawn):
            result = await SystemProber().ping_once("h", timeout_ms=1000)
        assert result.success is False
        assert "cannot run ping" in (result.error or "")

    async def test_timeout_kills_process(self) -> None:
        proc = _proc()
        proc.communicate = AsyncMock(side_effect=asyncio.TimeoutError)
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
            result = await SystemProber().ping_once("h", timeout_ms=1000)
        assert result.success is False
        assert "timed out" in (result.error or "")
        proc.kill.assert_called_once()


class TestSystemProberTrace:
    async def test_parses_hops(self) -> None:
        out = (
            b"traceroute to h (10.0.0.9), 30 hops max\n"
            b" 1  gw (192.168.0.1)  0.5 ms\n"
            b" 2  * * *\n"
        )
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=_proc(stdout=out))) as spawn:
            trace = await SystemProber().trace("h", timeout_ms=3000)
        assert trace.success is True
        assert len(trace.hops) == 2
        assert trace.hops[1].timed_out is True
        argv = spawn.call_args.args
        assert argv[0] == "traceroute"
        assert argv[1:3] == ("-w", "3")

    async def test_failure_yields_empty_failed_trace(self) -> None:
        proc = _proc(returncode=2, stderr=b"traceroute: unknown host h\n")
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
            trace = await SystemProber().trace("h", timeout_ms=1000)
        assert trace.success is False
        assert trace.hops == []
        assert "unknown host" in (trace.error or "")

    @pytest.mark.asyncio
    async def test_missing_binary(self) -> None:
        with patch("asyncio.create_subprocess_exec", new=AsyncMock(side_effect=OSError("nope"))):
            trace = await SystemProber(traceroute_binary="tracert").trace("h", timeout_ms=1000)
        assert trace.success is False
        assert "tracert" in (trace.error or "")

"""SystemProber — runs the host's ``ping`` and ``traceroute`` binaries."""

from __future__ import annotations

import asyncio
import time

import structlog

from pingwatch.core.types import DiagnosticTrace, ProbeResult
from pingwatch.probe.base import RETRY_DELAY_SECS, Prober
from pingwatch.probe.exceptions import ProbeCommandError, ProbeError, ProbeTimeoutError
from pingwatch.probe.parsing import parse_ping_latency, parse_traceroute_output

logger = structlog.stdlib.get_logger()

TRACE_MAX_HOPS = 30

# Extra wall time granted to a command beyond its own -W/-w deadline.
_GRACE_SECS = 1.0


def _timeout_secs(timeout_ms: int) -> int:
    return max(1, timeout_ms // 1000)


class SystemProber(Prober):
    """Prober backed by ``ping -c 1`` and ``traceroute`` subprocesses.

    Usage::

        prober = SystemProber()
        result = await prober.ping("8.8.8.8", retries=2, timeout_ms=2000)
    """

    def __init__(
        self,
        ping_binary: str = "ping",
        traceroute_binary: str = "traceroute",
        max_hops: int = TRACE_MAX_HOPS,
        retry_delay_secs: float = RETRY_DELAY_SECS,
    ) -> None:
        super().__init__(retry_delay_secs=retry_delay_secs)
        self._ping_binary = ping_binary
        self._traceroute_binary = traceroute_binary
        self._max_hops = max_hops

    async def ping_once(self, host: str, timeout_ms: int) -> ProbeResult:
        timestamp = time.time()
        secs = _timeout_secs(timeout_ms)
        started = time.perf_counter()
        try:
            output = await self._run(
                [self._ping_binary, "-c", "1", "-W", str(secs), host],
                deadline=secs + _GRACE_SECS,
            )
        except ProbeError as exc:
            logger.debug("ping_failed", host=host, error=str(exc))
            return ProbeResult.failed(host, str(exc), timestamp=timestamp)

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        latency = parse_ping_latency(output)
        return ProbeResult.ok(
            host,
            latency if latency is not None else elapsed_ms,
            timestamp=timestamp,
        )

    async def trace(self, host: str, timeout_ms: int) -> DiagnosticTrace:
        timestamp = time.time()
        secs = _timeout_secs(timeout_ms)
        try:
            output = await self._run(
                [
                    self._traceroute_binary,
                    "-w", str(secs),
                    "-q", "1",
                    "-m", str(self._max_hops),
                    host,
                ],
                deadline=secs * self._max_hops + _GRACE_SECS,
            )
        except ProbeError as exc:
            logger.warning("trace_failed", host=host, error=str(exc))
            return DiagnosticTrace(
                host=host, success=False, error=str(exc), timestamp=timestamp,
            )

        hops = parse_traceroute_output(output)
        logger.info("trace_completed", host=host, hops=len(hops))
        return DiagnosticTrace(host=host, hops=hops, success=True, timestamp=timestamp)

    async def _run(self, argv: list[str], deadline: float) -> str:
        """Run a command and return its stdout.

        Raises:
            ProbeCommandError: The binary is missing or exited non-zero.
            ProbeTimeoutError: The command outlived ``deadline`` seconds.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ProbeCommandError(f"cannot run {argv[0]}: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=deadline)
        except TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise ProbeTimeoutError(f"{argv[0]} timed out after {deadline:.0f}s") from exc

        if proc.returncode != 0:
            detail = (stderr or stdout).decode(errors="replace").strip().splitlines()
            reason = detail[-1] if detail else f"exit status {proc.returncode}"
            raise ProbeCommandError(f"{argv[0]} failed: {reason}")

        return stdout.decode(errors="replace")

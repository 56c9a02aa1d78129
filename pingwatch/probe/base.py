"""Abstract prober — retry policy around single reachability attempts."""

from __future__ import annotations

import abc
import asyncio

import structlog

from pingwatch.core.types import DiagnosticTrace, ProbeResult

logger = structlog.stdlib.get_logger()

RETRY_DELAY_SECS = 1.0


class Prober(abc.ABC):
    """Reachability and path-tracing capability used by the monitor.

    Subclasses implement ``ping_once()`` and ``trace()``; the base class
    owns the retry loop. Network failures are returned as data
    (``success=False``), never raised.

    Usage::

        prober = SystemProber()
        result = await prober.ping("example.com", retries=3, timeout_ms=5000)
        if not result.success:
            trace = await prober.trace("example.com", timeout_ms=5000)
    """

    def __init__(self, retry_delay_secs: float = RETRY_DELAY_SECS) -> None:
        self._retry_delay_secs = retry_delay_secs

    @property
    def retry_delay_secs(self) -> float:
        return self._retry_delay_secs

    @abc.abstractmethod
    async def ping_once(self, host: str, timeout_ms: int) -> ProbeResult:
        """Make a single reachability attempt bounded by ``timeout_ms``."""

    @abc.abstractmethod
    async def trace(self, host: str, timeout_ms: int) -> DiagnosticTrace:
        """Trace the network path to ``host`` in a single attempt."""

    async def ping(self, host: str, retries: int, timeout_ms: int) -> ProbeResult:
        """Ping with up to ``retries + 1`` attempts.

        Returns the first successful result, or the last failure. Waits
        ``retry_delay_secs`` between failed attempts, not after the last.
        """
        result = await self.ping_once(host, timeout_ms)
        for attempt in range(1, retries + 1):
            if result.success:
                return result
            logger.info(
                "ping_retry",
                host=host,
                attempt=attempt,
                retries=retries,
                error=result.error,
            )
            await asyncio.sleep(self._retry_delay_secs)
            result = await self.ping_once(host, timeout_ms)
        return result

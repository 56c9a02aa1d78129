"""NetworkMonitor — periodic reachability checks and the incident lifecycle."""

from __future__ import annotations

import asyncio
import secrets
import signal
import time

import structlog

from pingwatch.core.config import MonitorConfig
from pingwatch.core.types import CheckOutcome, CycleSummary, Incident
from pingwatch.monitor.resolution import resolve_open_incidents
from pingwatch.probe.base import Prober
from pingwatch.storage.incidents import IncidentStore

logger = structlog.stdlib.get_logger()

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class NetworkMonitor:
    """Checks every configured host on a fixed interval.

    A failed probe opens a new incident carrying the probe result and a
    diagnostic trace. A successful probe resolves the host's recent open
    incidents. Hosts are checked concurrently and in isolation: one host's
    failure never affects another's check.

    Usage::

        store = IncidentStore(config.db_path)
        monitor = NetworkMonitor(config, store, SystemProber())
        await monitor.start()
        await monitor.wait_stopped()
    """

    def __init__(
        self,
        config: MonitorConfig,
        store: IncidentStore,
        prober: Prober,
    ) -> None:
        self._config = config
        self._store = store
        self._prober = prober
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._shutdown_task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._stopped = asyncio.Event()
        self._cycle_lock = asyncio.Lock()
        self._signal_loop: asyncio.AbstractEventLoop | None = None
        self._cycle_count = 0
        self._last_summary: CycleSummary | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def last_summary(self) -> CycleSummary | None:
        return self._last_summary

    # ── Lifecycle ───────────────────────────────────────────────

    async def start(self, install_signal_handlers: bool = True) -> asyncio.Task[None] | None:
        """Run one check cycle now, then schedule the repeating loop.

        SIGINT and SIGTERM are routed to ``stop()`` unless
        ``install_signal_handlers`` is False. Calling ``start()`` on a running
        monitor logs a warning and returns the existing loop task. A stopped
        monitor has released its store and cannot be restarted.

        Returns:
            The repeating loop task, or None if the monitor was stopped
            during the first cycle or had already been stopped.
        """
        if self._running:
            logger.warning("monitor_already_running")
            return self._task

        if self._store.closed:
            logger.warning("monitor_store_closed", db_path=self._store.db_path)
            return None

        self._stop_event.clear()
        self._stopped.clear()
        self._running = True
        logger.info(
            "monitor_starting",
            hosts=self._config.hosts,
            interval_secs=self._config.interval_secs,
            timeout_ms=self._config.timeout_ms,
            retries=self._config.retries,
            db_path=self._store.db_path,
        )

        if install_signal_handlers:
            self._install_signal_handlers()

        await self.perform_check()

        if not self._running:
            return None
        self._task = asyncio.create_task(self._loop(), name="pingwatch-monitor")
        return self._task

    def stop(self) -> None:
        """Stop scheduling cycles, then close the store once idle.

        An in-flight cycle is allowed to finish. Safe to call from a signal
        handler, and a no-op when the monitor is not running.
        """
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        logger.info("monitor_stopping")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._finalize()
            return
        self._shutdown_task = loop.create_task(self._shutdown())

    async def wait_stopped(self) -> None:
        """Block until ``stop()`` has completed and the store is closed."""
        await self._stopped.wait()

    # ── Check cycle ─────────────────────────────────────────────

    async def perform_check(self) -> CycleSummary:
        """Check all hosts concurrently and wait for every check to settle."""
        async with self._cycle_lock:
            check_id = secrets.token_hex(3)
            started_at = time.time()
            hosts = list(self._config.hosts)
            logger.info("check_started", check_id=check_id, hosts=hosts)

            results = await asyncio.gather(
                *(self._guarded_check(host) for host in hosts),
                return_exceptions=True,
            )

            outcomes: list[CheckOutcome] = []
            for host, result in zip(hosts, results):
                if isinstance(result, BaseException):
                    outcomes.append(CheckOutcome(host=host, success=False, error=repr(result)))
                else:
                    outcomes.append(result)

            summary = CycleSummary.from_outcomes(check_id, started_at, outcomes)
            self._cycle_count += 1
            self._last_summary = summary
            self._log_summary(summary)
            return summary

    async def check_host(self, host: str) -> CheckOutcome:
        """Probe one host and apply the incident state machine.

        Raises:
            StoreWriteError: The incident for a failed probe was not saved.
        """
        result = await self._prober.ping(host, self._config.retries, self._config.timeout_ms)

        if result.success:
            logger.info("host_reachable", host=host, latency_ms=result.latency_ms)
            resolved = resolve_open_incidents(
                self._store, host, self._config.resolution_window,
            )
            return CheckOutcome(
                host=host,
                success=True,
                latency_ms=result.latency_ms,
                resolved_incident_ids=resolved,
            )

        logger.warning("host_unreachable", host=host, error=result.error)
        trace = await self._prober.trace(host, self._config.timeout_ms)
        incident_id = self._store.save_incident(
            Incident(host=host, probe=result, trace=trace),
        )

        last_hop = trace.last_reachable_hop()
        logger.error(
            "incident_recorded",
            incident_id=incident_id,
            host=host,
            trace_success=trace.success,
            last_reachable=last_hop.address if last_hop else None,
            last_reachable_hop=last_hop.hop if last_hop else None,
        )
        return CheckOutcome(
            host=host,
            success=False,
            error=result.error,
            incident_id=incident_id,
            last_reachable_hop=last_hop,
        )

    # ── Internal ────────────────────────────────────────────────

    async def _guarded_check(self, host: str) -> CheckOutcome:
        try:
            return await self.check_host(host)
        except Exception as exc:
            logger.exception("host_check_error", host=host)
            return CheckOutcome(host=host, success=False, error=str(exc) or type(exc).__name__)

    def _log_summary(self, summary: CycleSummary) -> None:
        try:
            stats = self._store.get_statistics()
            logger.info(
                "check_summary",
                check_id=summary.check_id,
                reachable=summary.reachable,
                unreachable=summary.unreachable,
                hosts=summary.hosts_checked,
                mean_latency_ms=(
                    round(summary.mean_latency_ms, 2)
                    if summary.mean_latency_ms is not None else None
                ),
                total_incidents=stats.total_incidents,
                unresolved_incidents=stats.unresolved_incidents,
            )
        except Exception:
            logger.exception("check_summary_error", check_id=summary.check_id)

    async def _loop(self) -> None:
        """Wait ``interval_secs`` after each cycle ends (or until stopped), then run the next.

        Cycles never overlap, so the effective period is ``interval_secs`` plus
        the duration of the cycle.
        """
        while self._running:
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._config.interval_secs,
                )
            except TimeoutError:
                pass
            if not self._running:
                break
            try:
                await self.perform_check()
            except Exception:
                logger.exception("check_cycle_error")

    async def _shutdown(self) -> None:
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        # Wait out a cycle started by start() before the loop existed.
        async with self._cycle_lock:
            pass
        self._finalize()

    def _finalize(self) -> None:
        self._remove_signal_handlers()
        self._store.close()
        self._stopped.set()
        logger.info("monitor_stopped", cycles=self._cycle_count)

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in _STOP_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # Windows event loops and non-main threads lack signal support
                logger.debug("signal_handler_unsupported", signal=sig.name)
                return
        self._signal_loop = loop

    def _remove_signal_handlers(self) -> None:
        if self._signal_loop is None:
            return
        for sig in _STOP_SIGNALS:
            self._signal_loop.remove_signal_handler(sig)
        self._signal_loop = None

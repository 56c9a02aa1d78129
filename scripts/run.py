#!/usr/bin/env python3
"""Monitor entrypoint — probes hosts on an interval and records incidents.

Usage::

    # Run with default config (config/settings.yaml + PINGWATCH_* env)
    python scripts/run.py

    # Override hosts and timing
    python scripts/run.py --hosts google.com,github.com --interval 30

    # Tighter probes
    python scripts/run.py --timeout 3000 --retries 5
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

import structlog
from pydantic import ValidationError

from pingwatch import __version__
from pingwatch.core.config import load_settings
from pingwatch.core.logging import setup_logging
from pingwatch.monitor.network import NetworkMonitor
from pingwatch.probe.system import SystemProber
from pingwatch.storage.exceptions import StoreUnavailableError
from pingwatch.storage.incidents import IncidentStore

logger = structlog.get_logger(__name__)


def build_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Map CLI flags onto the nested settings layout."""
    return {
        "monitor": {
            "hosts": args.hosts,
            "interval_secs": args.interval,
            "timeout_ms": args.timeout,
            "retries": args.retries,
            "db_path": args.db_path,
        },
    }


async def run(args: argparse.Namespace) -> int:
    """Start the monitor and run until interrupted."""
    try:
        settings = load_settings(args.config, overrides=build_overrides(args))
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        return 1
    setup_logging(level=args.log_level)

    try:
        store = IncidentStore(settings.monitor.db_path)
    except StoreUnavailableError:
        logger.exception("store_unavailable", db_path=settings.monitor.db_path)
        return 1

    monitor = NetworkMonitor(settings.monitor, store, SystemProber())
    await monitor.start()

    try:
        await monitor.wait_stopped()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")
        monitor.stop()
        await monitor.wait_stopped()

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Monitor network hosts and record reachability incidents.",
    )
    parser.add_argument("--config", default=None, help="Path to settings YAML (default: config/settings.yaml)")
    parser.add_argument("--hosts", default=None, help="Comma-separated hosts (default: 8.8.8.8,google.com,github.com)")
    parser.add_argument("-i", "--interval", type=int, default=None, help="Check interval in seconds (10-3600)")
    parser.add_argument("-t", "--timeout", type=int, default=None, help="Probe timeout in milliseconds (1000-30000)")
    parser.add_argument("-r", "--retries", type=int, default=None, help="Probe retries (1-10)")
    parser.add_argument("-d", "--db-path", default=None, help="SQLite database path (default: ./pingwatch.db)")
    parser.add_argument("--log-level", default=None, help="Log level override: DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("-v", "--version", action="version", version=f"pingwatch {__version__}")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Query API entrypoint — serves the incident history over HTTP.

Runs without a monitor; point it at the same database file the monitor
writes to.

Usage::

    python scripts/api.py
    python scripts/api.py --api-port 8080 --db-path ./data/pingwatch.db
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog
from pydantic import ValidationError

from pingwatch.api.server import start_api_server
from pingwatch.core.config import load_settings
from pingwatch.core.logging import setup_logging
from pingwatch.storage.exceptions import StoreUnavailableError
from pingwatch.storage.incidents import IncidentStore

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Serve the API until SIGINT/SIGTERM."""
    try:
        settings = load_settings(
            args.config,
            overrides={
                "monitor": {"db_path": args.db_path},
                "api": {"port": args.api_port},
            },
        )
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        return 1
    setup_logging(level=args.log_level)

    try:
        store = IncidentStore(settings.monitor.db_path)
    except StoreUnavailableError:
        logger.exception("store_unavailable", db_path=settings.monitor.db_path)
        return 1

    api = settings.api
    runner = await start_api_server(
        store,
        host=api.host,
        port=api.port,
        username=api.username or None,
        password=api.password.get_secret_value() or None,
    )

    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    await runner.cleanup()
    store.close()
    logger.info("api_server_stopped")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the pingwatch incident API.")
    parser.add_argument("--config", default=None, help="Path to settings YAML (default: config/settings.yaml)")
    parser.add_argument("-p", "--api-port", type=int, default=None, help="API port (1024-65535, default: 3000)")
    parser.add_argument("-d", "--db-path", default=None, help="SQLite database path (default: ./pingwatch.db)")
    parser.add_argument("--log-level", default=None, help="Log level override: DEBUG, INFO, WARNING, ERROR")
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()

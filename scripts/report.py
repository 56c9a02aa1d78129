#!/usr/bin/env python3
"""Incident report — terminal summary of the incident store with ANSI colors.

Usage::

    python scripts/report.py
    python scripts/report.py --db-path ./data/pingwatch.db

    # From code:
    print(render_report(store))
"""

from __future__ import annotations

import argparse
import re
import sys
import time
from collections import Counter
from datetime import datetime, timezone

from pydantic import ValidationError

from pingwatch.core.config import load_settings
from pingwatch.core.logging import setup_logging
from pingwatch.core.types import Incident, IncidentStatistics
from pingwatch.storage.exceptions import StoreUnavailableError
from pingwatch.storage.incidents import IncidentStore

RECENT_LIMIT = 10
HOST_SCAN_LIMIT = 1000


# ── ANSI Color Codes ──────────────────────────────────────────────

class C:
    """ANSI color/style codes."""
    RESET   = "\033[0m"
    BOLD    = "\033[1m"
    DIM     = "\033[2m"

    WHITE   = "\033[97m"
    CYAN    = "\033[96m"
    GREEN   = "\033[92m"
    RED     = "\033[91m"
    YELLOW  = "\033[93m"


# ── Box Drawing Characters ────────────────────────────────────────

TL = "┌"
TR = "┐"
BL = "└"
BR = "┘"
H  = "─"
V  = "│"
LT = "├"
RT = "┤"

DH  = "═"
DV  = "║"
DTL = "╔"
DTR = "╗"
DBL = "╚"
DBR = "╝"

REPORT_WIDTH = 80

_ANSI_RE = re.compile(r"\033\[[0-9;]*m")


# ── Formatting Helpers ────────────────────────────────────────────


def _strip_ansi(s: str) -> str:
    """Remove ANSI escape sequences for length calculations."""
    return _ANSI_RE.sub("", s)


def _box_top(width: int = REPORT_WIDTH) -> str:
    return C.DIM + TL + H * (width - 2) + TR + C.RESET


def _box_bot(width: int = REPORT_WIDTH) -> str:
    return C.DIM + BL + H * (width - 2) + BR + C.RESET


def _box_mid(width: int = REPORT_WIDTH) -> str:
    return C.DIM + LT + H * (width - 2) + RT + C.RESET


def _box_row(content: str, width: int = REPORT_WIDTH) -> str:
    """Pad content inside box borders."""
    pad = max(0, width - 2 - len(_strip_ansi(content)))
    return C.DIM + V + C.RESET + " " + content + " " * max(0, pad - 1) + C.DIM + V + C.RESET


def _center(text: str, width: int = REPORT_WIDTH - 2) -> str:
    """Center text accounting for ANSI codes."""
    pad = max(0, width - len(_strip_ansi(text)))
    left = pad // 2
    return " " * left + text + " " * (pad - left)


def _section(title: str, rows: list[str]) -> str:
    lines = ["", _box_top(), _box_row(f"{C.BOLD}{C.WHITE}  {title}{C.RESET}"), _box_mid()]
    lines.extend(_box_row(row) for row in rows)
    lines.append(_box_bot())
    return "\n".join(lines)


def format_duration(start: float, end: float) -> str:
    """Human duration between two epoch timestamps, e.g. ``2d 3h 5m``."""
    minutes = max(0, int((end - start) // 60))
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return f"{days}d {hours % 24}h {minutes % 60}m"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    return f"{minutes}m"


def format_timestamp(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


# ── Section Renderers ─────────────────────────────────────────────


def render_header(now: float | None = None) -> str:
    stamp = format_timestamp(time.time() if now is None else now)
    title = f"{C.BOLD}{C.CYAN}PINGWATCH{C.RESET}"
    subtitle = f"{C.DIM}Network Incident Report{C.RESET}"
    lines = [
        C.DIM + DTL + DH * (REPORT_WIDTH - 2) + DTR + C.RESET,
        C.DIM + DV + C.RESET + _center(title) + C.DIM + DV + C.RESET,
        C.DIM + DV + C.RESET + _center(subtitle) + C.DIM + DV + C.RESET,
        C.DIM + DV + C.RESET + _center(f"{C.DIM}{stamp}{C.RESET}") + C.DIM + DV + C.RESET,
        C.DIM + DBL + DH * (REPORT_WIDTH - 2) + DBR + C.RESET,
    ]
    return "\n".join(lines)


def render_statistics(stats: IncidentStatistics) -> str:
    open_color = C.RED if stats.unresolved_incidents else C.GREEN
    return _section("STATISTICS", [
        f"  {C.CYAN}Total Incidents{C.RESET}  {C.BOLD}{stats.total_incidents}{C.RESET}"
        f"   {C.CYAN}Unresolved{C.RESET}  {open_color}{C.BOLD}{stats.unresolved_incidents}{C.RESET}"
        f"   {C.CYAN}Hosts Affected{C.RESET}  {C.BOLD}{stats.hosts_affected}{C.RESET}",
    ])


def render_unresolved(incidents: list[Incident], now: float | None = None) -> str:
    if not incidents:
        return _section("UNRESOLVED INCIDENTS", [f"  {C.GREEN}No unresolved incidents{C.RESET}"])

    now = time.time() if now is None else now
    rows: list[str] = []
    for incident in incidents:
        rows.append(f"  {C.RED}{C.BOLD}{incident.host}{C.RESET}  {C.DIM}#{incident.id}{C.RESET}")
        rows.append(
            f"    Since {format_timestamp(incident.timestamp)}"
            f" {C.DIM}({format_duration(incident.timestamp, now)} ago){C.RESET}"
        )
        rows.append(f"    Error: {incident.probe.error or 'Unknown'}")
        hop = incident.trace.last_reachable_hop() if incident.trace else None
        if hop is not None:
            rows.append(f"    Last reachable: {C.YELLOW}{hop.address}{C.RESET} (hop {hop.hop})")
    return _section("UNRESOLVED INCIDENTS", rows)


def render_recent(incidents: list[Incident]) -> str:
    if not incidents:
        return ""
    rows: list[str] = []
    for incident in incidents:
        status = f"{C.GREEN}RESOLVED{C.RESET}" if incident.resolved else f"{C.RED}ACTIVE  {C.RESET}"
        rows.append(f"  {status}  {incident.host:<24} {C.DIM}{format_timestamp(incident.timestamp)}{C.RESET}")
        if incident.probe.success:
            rows.append(f"    Response time: {incident.probe.latency_ms:.2f}ms")
        else:
            rows.append(f"    {C.DIM}Error: {incident.probe.error or 'Unknown'}{C.RESET}")
    return _section(f"RECENT INCIDENTS (LAST {RECENT_LIMIT})", rows)


def render_host_summary(incidents: list[Incident]) -> str:
    if not incidents:
        return ""
    totals = Counter(i.host for i in incidents)
    unresolved = Counter(i.host for i in incidents if not i.resolved)
    rows: list[str] = []
    for host, total in totals.items():
        open_count = unresolved[host]
        mark = f"{C.RED}!{C.RESET}" if open_count else f"{C.GREEN}+{C.RESET}"
        rows.append(f"  {mark} {host}: {total} incidents ({open_count} unresolved)")
    return _section("HOST SUMMARY", rows)


# ── Full Report ───────────────────────────────────────────────────


def render_report(store: IncidentStore, now: float | None = None) -> str:
    """Render the complete report from the store."""
    sections = [
        render_header(now),
        render_statistics(store.get_statistics()),
        render_unresolved(store.get_unresolved_incidents(), now),
        render_recent(store.get_recent_incidents(RECENT_LIMIT)),
        render_host_summary(store.get_recent_incidents(HOST_SCAN_LIMIT)),
        "",
    ]
    return "\n".join(s for s in sections if s)


def main() -> None:
    parser = argparse.ArgumentParser(description="Print the pingwatch incident report.")
    parser.add_argument("--config", default=None, help="Path to settings YAML (default: config/settings.yaml)")
    parser.add_argument("-d", "--db-path", default=None, help="SQLite database path (default: ./pingwatch.db)")
    args = parser.parse_args()

    try:
        settings = load_settings(args.config, overrides={"monitor": {"db_path": args.db_path}})
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        sys.exit(1)
    setup_logging(level="WARNING", fmt="console")

    try:
        store = IncidentStore(settings.monitor.db_path)
    except StoreUnavailableError as exc:
        print(f"Failed to open incident store: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        print(render_report(store))
    finally:
        store.close()


if __name__ == "__main__":
    main()

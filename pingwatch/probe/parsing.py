"""Parsers for ping and traceroute textual output."""

from __future__ import annotations

import re

from pingwatch.core.types import TraceHop

_PING_TIME_RE = re.compile(r"time[=<]([0-9.]+)\s*ms")
_HOP_LINE_RE = re.compile(r"^\s*(\d+)\s+(.+)$")
_ADDRESS_RE = re.compile(r"(\d+\.\d+\.\d+\.\d+)")
_HOSTNAME_RE = re.compile(r"([a-zA-Z][a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")
_RTT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*ms")


def parse_ping_latency(output: str) -> float | None:
    """Extract the round-trip time in ms from ``ping`` output."""
    match = _PING_TIME_RE.search(output)
    if match is None:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def parse_traceroute_output(output: str) -> list[TraceHop]:
    """Parse ``traceroute`` output into hops.

    The first line is the header and is skipped. A hop line with neither
    an address nor a time is treated as timed out (``* * *``).
    """
    hops: list[TraceHop] = []
    for line in output.splitlines()[1:]:
        if not line.strip():
            continue
        match = _HOP_LINE_RE.match(line)
        if match is None:
            continue

        hop_number = int(match.group(1))
        if hop_number < 1 or (hops and hop_number < hops[-1].hop):
            continue
        data = match.group(2)

        address = _ADDRESS_RE.search(data)
        rtt = _RTT_RE.search(data)
        if address is None and rtt is None:
            hops.append(TraceHop(hop=hop_number, timed_out=True))
            continue

        hostname = _HOSTNAME_RE.search(data)
        hops.append(TraceHop(
            hop=hop_number,
            address=address.group(1) if address else None,
            hostname=hostname.group(1) if hostname else None,
            rtt_ms=float(rtt.group(1)) if rtt else None,
        ))
    return hops

"""Probers — reachability checks and diagnostic path traces."""

from pingwatch.probe.base import Prober
from pingwatch.probe.exceptions import ProbeCommandError, ProbeError, ProbeTimeoutError
from pingwatch.probe.parsing import parse_ping_latency, parse_traceroute_output
from pingwatch.probe.system import SystemProber

__all__ = [
    "ProbeCommandError",
    "ProbeError",
    "ProbeTimeoutError",
    "Prober",
    "SystemProber",
    "parse_ping_latency",
    "parse_traceroute_output",
]

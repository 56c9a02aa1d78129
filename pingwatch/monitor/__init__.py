"""Monitoring loop and incident resolution."""

from pingwatch.monitor.network import NetworkMonitor
from pingwatch.monitor.resolution import DEFAULT_RESOLUTION_WINDOW, resolve_open_incidents

__all__ = [
    "DEFAULT_RESOLUTION_WINDOW",
    "NetworkMonitor",
    "resolve_open_incidents",
]

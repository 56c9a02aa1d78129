"""Core module — config, types, logging."""

from pingwatch.core.config import (
    ApiConfig,
    LoggingConfig,
    MonitorConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)
from pingwatch.core.logging import setup_logging
from pingwatch.core.types import (
    CheckOutcome,
    CycleSummary,
    DiagnosticTrace,
    Incident,
    IncidentStatistics,
    ProbeResult,
    TraceHop,
)

__all__ = [
    "ApiConfig",
    "CheckOutcome",
    "CycleSummary",
    "DiagnosticTrace",
    "Incident",
    "IncidentStatistics",
    "LoggingConfig",
    "MonitorConfig",
    "ProbeResult",
    "Settings",
    "TraceHop",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]

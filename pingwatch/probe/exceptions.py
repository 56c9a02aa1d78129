"""Exception hierarchy for probe execution."""

from __future__ import annotations


class ProbeError(Exception):
    """Base exception for probe errors."""


class ProbeCommandError(ProbeError):
    """A probe command could not be run or exited non-zero."""


class ProbeTimeoutError(ProbeError):
    """A probe command did not finish within its deadline."""

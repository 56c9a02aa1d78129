"""Incident store exceptions."""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for incident store errors."""


class StoreUnavailableError(StoreError):
    """The storage location could not be opened or initialised."""


class StoreWriteError(StoreError):
    """An incident could not be persisted."""

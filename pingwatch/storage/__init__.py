"""Incident persistence."""

from pingwatch.storage.exceptions import StoreError, StoreUnavailableError, StoreWriteError
from pingwatch.storage.incidents import IncidentStore

__all__ = [
    "IncidentStore",
    "StoreError",
    "StoreUnavailableError",
    "StoreWriteError",
]

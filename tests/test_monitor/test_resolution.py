"""Tests for resolve_open_incidents — window bounds and idempotence."""

from __future__ import annotations

from pingwatch.core.types import Incident, ProbeResult
from pingwatch.monitor.resolution import resolve_open_incidents
from pingwatch.storage.incidents import IncidentStore


def _save(store: IncidentStore, host: str, timestamp: float) -> int:
    return store.save_incident(Incident(
        host=host,
        timestamp=timestamp,
        probe=ProbeResult.failed(host, "Request timed out", timestamp=timestamp),
    ))


class TestResolveOpenIncidents:
    def test_resolves_all_within_window(self) -> None:
        with IncidentStore(":memory:") as store:
            ids = [_save(store, "h", float(ts)) for ts in range(3)]
            resolved = resolve_open_incidents(store, "h")
            assert sorted(resolved) == ids
            assert store.get_unresolved_incidents() == []

    def test_older_incidents_outside_window_stay_open(self) -> None:
        with IncidentStore(":memory:") as store:
            ids = [_save(store, "h", float(ts)) for ts in range(12)]
            resolved = resolve_open_incidents(store, "h", window=10)
            assert len(resolved) == 10
            still_open = [i.id for i in store.get_unresolved_incidents()]
            assert sorted(still_open) == ids[:2]

    def test_already_resolved_not_reported(self) -> None:
        with IncidentStore(":memory:") as store:
            first = _save(store, "h", 1.0)
            second = _save(store, "h", 2.0)
            store.mark_incident_resolved(first)
            assert resolve_open_incidents(store, "h") == [second]
            assert resolve_open_incidents(store, "h") == []

    def test_other_hosts_untouched(self) -> None:
        with IncidentStore(":memory:") as store:
            _save(store, "a", 1.0)
            other = _save(store, "b", 2.0)
            resolve_open_incidents(store, "a")
            assert [i.id for i in store.get_unresolved_incidents()] == [other]

    def test_no_incidents(self) -> None:
        with IncidentStore(":memory:") as store:
            assert resolve_open_incidents(store, "nobody") == []

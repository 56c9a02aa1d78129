"""Auto-resolution of open incidents once a host is reachable again."""

from __future__ import annotations

import structlog

from pingwatch.storage.incidents import IncidentStore

logger = structlog.stdlib.get_logger()

DEFAULT_RESOLUTION_WINDOW = 10


def resolve_open_incidents(
    store: IncidentStore,
    host: str,
    window: int = DEFAULT_RESOLUTION_WINDOW,
) -> list[int]:
    """Resolve the unresolved incidents among the ``window`` most recent for ``host``.

    Older unresolved incidents outside the window are left untouched.
    Returns the ids that were actually flipped to resolved.
    """
    resolved: list[int] = []
    for incident in store.get_incidents_by_host(host, window):
        if incident.resolved or incident.id is None:
            continue
        if store.mark_incident_resolved(incident.id):
            resolved.append(incident.id)
            logger.info("incident_resolved", incident_id=incident.id, host=host)
    return resolved

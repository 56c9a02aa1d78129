"""HTTP query API over the incident store.

Runs as an ``aiohttp`` web server next to (or separately from) the monitor.
Exposes:
- ``GET    /health``                  → liveness
- ``GET    /incidents?limit=&host=``  → recent incidents, optionally per host
- ``GET    /incidents/latest``        → most recent incident
- ``GET    /incidents/unresolved``    → all open incidents
- ``PATCH  /incidents/{id}/resolve``  → mark one incident resolved
- ``DELETE /incidents``               → clear the table
- ``GET    /statistics``              → aggregate counts
- ``GET    /hosts``                   → hosts with recorded incidents
"""

from __future__ import annotations

import base64
import hmac
from datetime import UTC, datetime
from typing import Any

import structlog
from aiohttp import web

from pingwatch.storage.incidents import IncidentStore

logger = structlog.stdlib.get_logger()

DEFAULT_LIMIT = 50
HOSTS_SCAN_LIMIT = 1000


def _check_basic_auth(request: web.Request, username: str, password: str) -> bool:
    """Validate HTTP Basic Auth credentials."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Basic "):
        return False
    try:
        decoded = base64.b64decode(auth_header[6:]).decode("utf-8")
        req_user, req_pass = decoded.split(":", 1)
    except (ValueError, UnicodeDecodeError):
        return False
    user_ok = hmac.compare_digest(req_user, username)
    pass_ok = hmac.compare_digest(req_pass, password)
    return user_ok and pass_ok


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def _auth_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Require HTTP Basic Auth on all routes when credentials are configured."""
    username = request.app.get("auth_username")
    password = request.app.get("auth_password")
    if username and password:
        if not _check_basic_auth(request, username, password):
            return web.json_response(
                {"error": "Unauthorized"},
                status=401,
                headers={"WWW-Authenticate": 'Basic realm="pingwatch"'},
            )
    return await handler(request)


@web.middleware
async def _error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Turn unexpected handler failures into a JSON 500."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("api_request_error", method=request.method, path=request.path)
        return _error(500, "Internal server error")


def _store(request: web.Request) -> IncidentStore:
    return request.app["store"]


def _incidents_payload(incidents: list[Any]) -> dict[str, Any]:
    return {
        "incidents": [i.model_dump(mode="json") for i in incidents],
        "count": len(incidents),
    }


async def _handle_health(request: web.Request) -> web.Response:
    return web.json_response({
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
    })


async def _handle_incidents(request: web.Request) -> web.Response:
    raw_limit = request.query.get("limit")
    limit = DEFAULT_LIMIT
    if raw_limit:
        try:
            limit = int(raw_limit)
        except ValueError:
            return _error(400, "Invalid limit")
        if limit < 0:
            return _error(400, "Invalid limit")

    host = request.query.get("host")
    store = _store(request)
    incidents = (
        store.get_incidents_by_host(host, limit)
        if host
        else store.get_recent_incidents(limit)
    )
    return web.json_response(_incidents_payload(incidents))


async def _handle_latest(request: web.Request) -> web.Response:
    incident = _store(request).get_latest_incident()
    if incident is None:
        return _error(404, "No incidents found")
    return web.json_response({"incident": incident.model_dump(mode="json")})


async def _handle_unresolved(request: web.Request) -> web.Response:
    return web.json_response(_incidents_payload(_store(request).get_unresolved_incidents()))


async def _handle_resolve(request: web.Request) -> web.Response:
    try:
        incident_id = int(request.match_info["id"])
    except ValueError:
        return _error(400, "Invalid incident ID")

    if not _store(request).mark_incident_resolved(incident_id):
        return _error(404, "Incident not found")
    logger.info("incident_resolved_via_api", incident_id=incident_id)
    return web.json_response({"message": f"Incident {incident_id} marked as resolved"})


async def _handle_clear(request: web.Request) -> web.Response:
    if not _store(request).clear_all_incidents():
        return _error(500, "Failed to clear incidents")
    return web.json_response({"message": "All incidents cleared successfully"})


async def _handle_statistics(request: web.Request) -> web.Response:
    return web.json_response(_store(request).get_statistics().model_dump())


async def _handle_hosts(request: web.Request) -> web.Response:
    hosts = _store(request).get_affected_hosts(HOSTS_SCAN_LIMIT)
    return web.json_response({"hosts": hosts, "count": len(hosts)})


def create_api_app(
    store: IncidentStore,
    username: str | None = None,
    password: str | None = None,
) -> web.Application:
    """Create the aiohttp application bound to ``store``."""
    app = web.Application(middlewares=[_error_middleware, _auth_middleware])
    app["store"] = store
    app["auth_username"] = username
    app["auth_password"] = password
    app.router.add_get("/health", _handle_health)
    app.router.add_get("/incidents", _handle_incidents)
    app.router.add_get("/incidents/latest", _handle_latest)
    app.router.add_get("/incidents/unresolved", _handle_unresolved)
    app.router.add_patch("/incidents/{id}/resolve", _handle_resolve)
    app.router.add_delete("/incidents", _handle_clear)
    app.router.add_get("/statistics", _handle_statistics)
    app.router.add_get("/hosts", _handle_hosts)
    return app


async def start_api_server(
    store: IncidentStore,
    host: str = "0.0.0.0",
    port: int = 3000,
    username: str | None = None,
    password: str | None = None,
) -> web.AppRunner:
    """Start the API server. Returns the runner for cleanup."""
    app = create_api_app(store, username=username, password=password)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("api_server_started", host=host, port=port)
    return runner

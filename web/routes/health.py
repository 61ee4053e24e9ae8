"""Health check endpoint."""

from __future__ import annotations

from aiohttp import web

from web.keys import CONTROLLER_KEY


routes = web.RouteTableDef()


@routes.get("/health")
async def health_check(request: web.Request) -> web.Response:
    controller = request.app[CONTROLLER_KEY]
    sync = controller.synchronizer
    data = {
        "status": "ok" if controller.sessions.session and sync.last_error is None else "degraded",
        "session_id": controller.sessions.session_id,
        "polling": sync.running,
        "last_poll_error": str(sync.last_error) if sync.last_error else None,
    }
    return web.json_response(data)

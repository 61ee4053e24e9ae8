"""Draw endpoints used by the host display."""

from __future__ import annotations

import json
from typing import Any, Dict

from aiohttp import web

from core.exceptions import ValidationError
from web.keys import CONTROLLER_KEY


routes = web.RouteTableDef()


async def _read_json(request: web.Request) -> Dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        payload = await request.json()
    except json.JSONDecodeError as e:
        raise ValidationError(f"Request body is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _state_response(request: web.Request, **extra: Any) -> web.Response:
    controller = request.app[CONTROLLER_KEY]
    return web.json_response({**extra, "state": controller.to_dict()})


@routes.get("/api/state")
async def get_state(request: web.Request) -> web.Response:
    return web.json_response(request.app[CONTROLLER_KEY].to_dict())


@routes.post("/api/draw")
async def start_draw(request: web.Request) -> web.Response:
    # The winner is deliberately not returned; it is revealed when the reel lands
    winner = await request.app[CONTROLLER_KEY].draw()
    return _state_response(request, started=winner is not None)


@routes.post("/api/reel/transition-end")
async def reel_transition_end(request: web.Request) -> web.Response:
    landed = await request.app[CONTROLLER_KEY].reel.finish_transition()
    return _state_response(request, landed=landed)


@routes.post("/api/next-round")
async def next_round(request: web.Request) -> web.Response:
    advanced = await request.app[CONTROLLER_KEY].next_round()
    return _state_response(request, advanced=advanced)


@routes.post("/api/reset")
async def reset_draw(request: web.Request) -> web.Response:
    saved = await request.app[CONTROLLER_KEY].reset()
    return _state_response(request, saved=saved)


@routes.post("/api/sessions")
async def new_session(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    name = payload.get("name")
    if name is not None and not isinstance(name, str):
        raise ValidationError("name must be a string")
    created = await request.app[CONTROLLER_KEY].new_session(name or None)
    return _state_response(request, created=created)


@routes.post("/api/sessions/switch")
async def switch_session(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    target = payload.get("target") or payload.get("session_id") or payload.get("code")
    if not isinstance(target, str) or not target.strip():
        raise ValidationError("target session id or join code is required")
    switched = await request.app[CONTROLLER_KEY].switch_session(target)
    return _state_response(request, switched=switched)

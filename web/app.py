"""aiohttp application factory for the host display API."""

from __future__ import annotations

from aiohttp import web

from services.raffle import RaffleController
from web.keys import CONTROLLER_KEY
from web.middleware import error_middleware, timing_middleware
from web.routes import register_routes


def create_app(controller: RaffleController) -> web.Application:
    """Create the host API application.

    Args:
        controller: Raffle controller the endpoints act on

    Returns:
        Configured aiohttp application
    """
    app = web.Application(middlewares=[timing_middleware, error_middleware])
    app[CONTROLLER_KEY] = controller
    register_routes(app)
    return app

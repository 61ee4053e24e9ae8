"""Typed application keys shared by the web modules."""

from __future__ import annotations

from aiohttp import web

from services.raffle import RaffleController

CONTROLLER_KEY = web.AppKey("controller", RaffleController)

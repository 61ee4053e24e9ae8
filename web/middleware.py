"""Request timing and error translation for the host API."""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from aiohttp import web

from core import get_logger
from core.exceptions import ApplicationError, DrawError, ReelStateError, ValidationError

logger = get_logger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

SLOW_REQUEST_SECONDS = 1.0


@web.middleware
async def timing_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    start = time.perf_counter()
    response = await handler(request)
    duration = time.perf_counter() - start
    if duration > SLOW_REQUEST_SECONDS:
        logger.warning(f"Slow request: {request.method} {request.path} took {duration:.2f}s")
    response.headers['X-Response-Time'] = f"{duration:.3f}s"
    return response


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ValidationError as e:
        return web.json_response({"error": str(e)}, status=400)
    except (ReelStateError, DrawError) as e:
        return web.json_response({"error": str(e)}, status=409)
    except ApplicationError as e:
        logger.error(f"Application error on {request.method} {request.path}: {e}", exc_info=True)
        return web.json_response({"error": str(e)}, status=500)
    except Exception as e:
        logger.error(f"Internal server error on {request.method} {request.path}: {e}", exc_info=True)
        return web.json_response({"error": "Internal server error"}, status=500)

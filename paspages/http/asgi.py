"""
ASGI adapter - Bridges the ASGI protocol to the PasPages router.

Handles ``http`` and ``lifespan`` scopes. End users never see a traceback:
unmatched routes answer ``404 - Page Not Found`` and unhandled handler errors
answer ``500 Internal Server Error`` after being logged.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..i18n import I18n
from .request import Request, RequestFault
from .response import Response

NOT_FOUND_TEXT = "404 - Page Not Found"

logger = logging.getLogger("paspages.asgi")


def to_response(result: Any) -> Response:
    """Coerce a handler's return value into a Response."""
    if isinstance(result, Response):
        return result
    if isinstance(result, (dict, list)):
        return Response.json(result)
    if isinstance(result, str):
        return Response.html(result)
    if result is None:
        return Response(b"", status=204)
    raise TypeError(f"Handler returned unsupported type {type(result).__name__}")


class ASGIAdapter:
    """
    ASGI application adapter.

    ``app`` is the PasPages application; it supplies the router, the config
    and the ``startup``/``shutdown`` hooks used by lifespan events.
    """

    def __init__(self, app: Any):
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)

    async def handle_http(self, scope: dict, receive: Callable, send: Callable):
        request = Request(scope, receive)
        config = self.app.config
        request.state["locale"] = I18n.locale_from_request(request, config)

        if request.method == "OPTIONS":
            response = Response(b"", status=204, headers={
                "access-control-allow-methods": "GET, POST, OPTIONS",
                "access-control-allow-headers": request.header(
                    "access-control-request-headers", "content-type"
                ),
            })
        else:
            response = await self._dispatch(request)

        response.set_header("access-control-allow-origin", config.cors_origin)
        await response.send_asgi(send, head=request.method == "HEAD")

    async def _dispatch(self, request: Request) -> Response:
        match = self.app.router.match_sync(request.path, request.method)
        if match is None:
            return Response.text(NOT_FOUND_TEXT, status=404)

        request.path_params = dict(match.params)
        try:
            return to_response(await match.route.handler(request))
        except RequestFault as fault:
            logger.warning(f"{request.method} {request.path}: {fault}")
            return Response.text(fault.message, status=fault.status)
        except Exception as e:
            logger.error(
                f"Unhandled error in {request.method} {request.path}: {e}",
                exc_info=True,
            )
            return Response.text("Internal Server Error", status=500)

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable):
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    await self.app.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    logger.error(f"Startup error: {e}", exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    raise

            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.app.shutdown()
                    await send({"type": "lifespan.shutdown.complete"})
                except Exception as e:
                    logger.error(f"Shutdown error: {e}", exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                break

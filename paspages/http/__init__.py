"""
HTTP primitives: request, response, routing and the ASGI adapter.
"""

from .request import BadRequest, InvalidJSON, Request, RequestFault, UnsupportedMediaType
from .response import Response
from .routing import Route, RouteMatch, Router
from .asgi import ASGIAdapter, NOT_FOUND_TEXT

__all__ = [
    "Request",
    "RequestFault",
    "BadRequest",
    "InvalidJSON",
    "UnsupportedMediaType",
    "Response",
    "Router",
    "Route",
    "RouteMatch",
    "ASGIAdapter",
    "NOT_FOUND_TEXT",
]

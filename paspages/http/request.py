"""
Request - ASGI request wrapper.

Provides:
- Lazily parsed query string and headers
- Idempotent body reading
- JSON and urlencoded form parsing with structured faults
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import parse_qsl

from ..faults import Fault, FaultDomain, Severity


# ============================================================================
# Request Faults
# ============================================================================

class RequestFault(Fault):
    """Base class for request-related faults."""
    domain = FaultDomain.HTTP
    status = 400

    def __init__(self, message: Optional[str] = None, **metadata):
        super().__init__(
            code=self.code,
            message=message or self.message,
            severity=Severity.WARN,
            public=True,
            metadata=metadata,
        )


class BadRequest(RequestFault):
    """Malformed request (400)."""
    code = "BAD_REQUEST"
    message = "Bad request"


class InvalidJSON(RequestFault):
    """Invalid JSON payload (400)."""
    code = "INVALID_JSON"
    message = "Invalid JSON"


class UnsupportedMediaType(RequestFault):
    """Unsupported Content-Type (415)."""
    code = "UNSUPPORTED_MEDIA_TYPE"
    message = "Unsupported media type"
    status = 415


# ============================================================================
# Request Class
# ============================================================================

class Request:
    """
    Request object handed to route handlers.

    ``path_params`` is filled by the router; ``state`` carries per-request
    values such as the resolved locale.
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[..., Awaitable[dict]],
        *,
        max_body_size: int = 10_485_760,  # 10 MiB
    ):
        self.scope = scope
        self._receive = receive
        self.max_body_size = max_body_size

        self.state: Dict[str, Any] = {}
        self.path_params: Dict[str, str] = {}

        self._body: Optional[bytes] = None
        self._json: Any = None
        self._form: Optional[Dict[str, str]] = None
        self._query_params: Optional[Dict[str, str]] = None
        self._headers: Optional[Dict[str, str]] = None

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        """HTTP method (GET, POST, etc.)."""
        return self.scope.get("method", "GET")

    @property
    def path(self) -> str:
        """Request path (decoded)."""
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("utf-8")

    @property
    def base_url(self) -> str:
        """Scheme and host the request was addressed to."""
        scheme = self.scope.get("scheme", "http")
        host = self.header("host")
        if not host:
            server = self.scope.get("server") or ("localhost", None)
            host = server[0] if server[1] in (None, 80, 443) else f"{server[0]}:{server[1]}"
        return f"{scheme}://{host}"

    # ========================================================================
    # Query Parameters
    # ========================================================================

    @property
    def query_params(self) -> Dict[str, str]:
        """Parsed query parameters; the first occurrence of a name wins."""
        if self._query_params is None:
            params: Dict[str, str] = {}
            for key, value in parse_qsl(self.query_string, keep_blank_values=True):
                params.setdefault(key, value)
            self._query_params = params
        return self._query_params

    def query_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single query parameter."""
        return self.query_params.get(name, default)

    # ========================================================================
    # Headers
    # ========================================================================

    @property
    def headers(self) -> Dict[str, str]:
        """Headers with lowercase names."""
        if self._headers is None:
            self._headers = {
                name.decode("latin1").lower(): value.decode("latin1")
                for name, value in self.scope.get("headers", [])
            }
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single header (case-insensitive)."""
        return self.headers.get(name.lower(), default)

    def content_type(self) -> Optional[str]:
        return self.header("content-type")

    # ========================================================================
    # Body
    # ========================================================================

    async def body(self) -> bytes:
        """
        Read full request body (idempotent).

        Raises:
            BadRequest: If body exceeds max_body_size
        """
        if self._body is not None:
            return self._body

        chunks = []
        total_size = 0
        more_body = True
        while more_body:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            total_size += len(chunk)
            if total_size > self.max_body_size:
                raise BadRequest(
                    "Request body too large",
                    max_allowed=self.max_body_size,
                )
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        self._body = b"".join(chunks)
        return self._body

    async def text(self, encoding: str = "utf-8") -> str:
        return (await self.body()).decode(encoding)

    async def json(self) -> Any:
        """
        Parse request body as JSON.

        Raises:
            InvalidJSON: If JSON is malformed
        """
        if self._json is not None:
            return self._json
        body_bytes = await self.body()
        try:
            self._json = stdlib_json.loads(body_bytes.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise InvalidJSON(f"Invalid UTF-8 in JSON payload: {e}")
        except stdlib_json.JSONDecodeError as e:
            raise InvalidJSON(f"Invalid JSON: {e}")
        return self._json

    async def form(self) -> Dict[str, str]:
        """
        Parse application/x-www-form-urlencoded form data.

        Raises:
            UnsupportedMediaType: If Content-Type is not form-urlencoded
        """
        if self._form is not None:
            return self._form

        ct = (self.content_type() or "").split(";", 1)[0].strip().lower()
        if ct != "application/x-www-form-urlencoded":
            raise UnsupportedMediaType(
                f"Expected application/x-www-form-urlencoded, got {ct or 'nothing'}"
            )

        body_str = (await self.body()).decode("utf-8")
        fields: Dict[str, str] = {}
        for key, value in parse_qsl(body_str, keep_blank_values=True):
            fields.setdefault(key, value)
        self._form = fields
        return self._form

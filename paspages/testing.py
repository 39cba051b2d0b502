"""
PasPages Testing - in-process ASGI test client.

``TestClient`` calls the application directly, without a socket, and
captures the response events into a ``TestResponse``::

    client = TestClient(create_app(config, modules=[...]))
    resp = await client.get("/")
    assert resp.status_code == 200
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode


def make_test_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    scheme: str = "http",
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = [
        (
            name.encode("latin-1") if isinstance(name, str) else name,
            value.encode("latin-1") if isinstance(value, str) else value,
        )
        for name, value in headers or []
    ]
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": scheme,
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 12345),
        "root_path": "",
    }


def make_test_receive(body: bytes = b"") -> Callable:
    """ASGI receive callable delivering ``body`` in a single message."""
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


class TestResponse:
    """Captured ASGI response."""

    __test__ = False

    def __init__(self, status_code: int, headers: Dict[str, str], body: bytes):
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self._json_cache: Any = None

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        if self._json_cache is None:
            self._json_cache = stdlib_json.loads(self.body)
        return self._json_cache

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").split(";")[0].strip()

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("location")

    def __repr__(self) -> str:
        return f"<TestResponse [{self.status_code}] {self.content_type} {len(self.body)}B>"


class TestClient:
    """
    In-process ASGI test client.

    A query string may be given inline (``"/api/blog?search=x"``) or through
    ``query=``. ``json=`` sends a JSON body, ``data=`` a urlencoded form and
    ``body=`` raw bytes.
    """

    __test__ = False

    def __init__(self, app: Any, *, default_headers: Optional[Dict[str, str]] = None):
        self.app = app
        self.default_headers = default_headers or {}

    async def get(self, path: str, **kw) -> TestResponse:
        return await self.request("GET", path, **kw)

    async def post(self, path: str, **kw) -> TestResponse:
        return await self.request("POST", path, **kw)

    async def head(self, path: str, **kw) -> TestResponse:
        return await self.request("HEAD", path, **kw)

    async def options(self, path: str, **kw) -> TestResponse:
        return await self.request("OPTIONS", path, **kw)

    async def request(
        self,
        method: str,
        path: str,
        *,
        query: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        json: Any = None,
        data: Optional[Dict[str, str]] = None,
        body: bytes = b"",
    ) -> TestResponse:
        path, _, query_string = path.partition("?")
        if query:
            query_string = "&".join(filter(None, [query_string, urlencode(query)]))

        combined = {k.lower(): v for k, v in self.default_headers.items()}
        combined.update({k.lower(): v for k, v in (headers or {}).items()})
        if json is not None:
            body = stdlib_json.dumps(json).encode("utf-8")
            combined.setdefault("content-type", "application/json")
        elif data is not None:
            body = urlencode(data).encode("utf-8")
            combined.setdefault("content-type", "application/x-www-form-urlencoded")
        if body:
            combined["content-length"] = str(len(body))
        combined.setdefault("host", "testserver")

        status_code = 500
        resp_headers: Dict[str, str] = {}
        body_parts: List[bytes] = []

        async def send(event: dict):
            nonlocal status_code
            if event["type"] == "http.response.start":
                status_code = event["status"]
                for name, value in event.get("headers", []):
                    resp_headers[name.decode("latin-1").lower()] = value.decode("latin-1")
            elif event["type"] == "http.response.body":
                body_parts.append(event.get("body", b""))

        scope = make_test_scope(method, path, query_string, list(combined.items()))
        await self.app(scope, make_test_receive(body), send)
        return TestResponse(status_code, resp_headers, b"".join(body_parts))

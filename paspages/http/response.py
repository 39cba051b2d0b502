"""
Response - HTTP response builder for the ASGI layer.

Provides:
- Factory methods for HTML, plain text, JSON and redirects
- Lowercase header map with multi-value support
- ASGI 3 sending (``http.response.start`` + one ``http.response.body``)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger("paspages.http.response")


def _json_default_serializer(o):
    if hasattr(o, "to_dict"):
        return o.to_dict()
    if hasattr(o, "isoformat"):
        return o.isoformat()
    return str(o)


class Response:
    """
    HTTP response.

    ``content`` may be bytes, str or a JSON-serializable dict/list; it is
    encoded once when the response is sent.
    """

    def __init__(
        self,
        content: Union[bytes, str, Mapping, Sequence] = b"",
        status: int = 200,
        headers: Optional[Mapping[str, Union[str, Sequence[str]]]] = None,
        media_type: Optional[str] = None,
        *,
        encoding: str = "utf-8",
    ):
        self.status = status
        self._content = content
        self.encoding = encoding

        self._headers: Dict[str, Union[str, List[str]]] = {}
        if headers:
            for key, value in headers.items():
                if isinstance(value, (list, tuple)):
                    self._headers[key.lower()] = list(value)
                else:
                    self._headers[key.lower()] = value

        if media_type:
            self._headers["content-type"] = media_type
        elif "content-type" not in self._headers:
            self._headers["content-type"] = self._detect_media_type(content)

    @property
    def headers(self) -> Dict[str, Union[str, List[str]]]:
        """Get response headers."""
        return self._headers

    @property
    def body(self) -> bytes:
        return self._encode_body(self._content)

    def _detect_media_type(self, content: Any) -> str:
        if isinstance(content, (dict, list)):
            return "application/json; charset=utf-8"
        elif isinstance(content, str):
            return "text/plain; charset=utf-8"
        return "application/octet-stream"

    # ========================================================================
    # Factory Methods
    # ========================================================================

    @classmethod
    def json(
        cls,
        obj: Any,
        status: int = 200,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "Response":
        """Create JSON response."""
        return cls(
            content=json.dumps(obj, default=_json_default_serializer),
            status=status,
            headers=headers,
            media_type="application/json; charset=utf-8",
        )

    @classmethod
    def html(cls, content: str, status: int = 200, **kwargs) -> "Response":
        """Create HTML response."""
        return cls(
            content=content,
            status=status,
            media_type="text/html; charset=utf-8",
            **kwargs
        )

    @classmethod
    def text(cls, content: str, status: int = 200, **kwargs) -> "Response":
        """Create plain text response."""
        return cls(
            content=content,
            status=status,
            media_type="text/plain; charset=utf-8",
            **kwargs
        )

    @classmethod
    def redirect(
        cls,
        url: str,
        status: int = 302,
        *,
        headers: Optional[Dict[str, str]] = None
    ) -> "Response":
        """
        Create redirect response.

        Args:
            url: Redirect URL
            status: HTTP status (default 302 Found)
            headers: Additional headers
        """
        redirect_headers = {"location": url}
        if headers:
            redirect_headers.update(headers)
        return cls(content=b"", status=status, headers=redirect_headers)

    # ========================================================================
    # Headers
    # ========================================================================

    def set_header(self, name: str, value: str) -> None:
        """Set header, replacing any existing value."""
        self._headers[name.lower()] = value

    # ========================================================================
    # ASGI
    # ========================================================================

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]], *, head: bool = False) -> None:
        """Send response via ASGI."""
        body = self._encode_body(self._content)
        if "content-length" not in self._headers:
            self._headers["content-length"] = str(len(body))

        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": self._prepare_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": b"" if head else body,
            "more_body": False,
        })

    def _prepare_headers(self) -> List[tuple]:
        """Prepare headers for ASGI (list of byte tuples)."""
        headers_list = []
        for name, value in self._headers.items():
            name_bytes = name.encode("latin1")
            if isinstance(value, list):
                for v in value:
                    headers_list.append((name_bytes, v.encode("latin1")))
            else:
                headers_list.append((name_bytes, value.encode("latin1")))
        return headers_list

    def _encode_body(self, content: Any) -> bytes:
        if isinstance(content, bytes):
            return content
        elif isinstance(content, str):
            return content.encode(self.encoding)
        elif isinstance(content, (dict, list)):
            return json.dumps(content, default=_json_default_serializer).encode(self.encoding)
        return str(content).encode(self.encoding)

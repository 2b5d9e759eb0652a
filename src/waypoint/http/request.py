"""Immutable HTTP request.

Frozen metadata with async body access. Created once per request at the
server boundary and handed, unchanged, to the dispatcher and handlers.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from waypoint._internal.asgi import Message, Receive, Scope
from waypoint.http.headers import Headers


async def _empty_receive() -> Message:
    return {"type": "http.request", "body": b"", "more_body": False}


@dataclass(frozen=True, slots=True, eq=False)
class Request:
    """An immutable HTTP request.

    ``path`` is the decoded URL path without query string. ``method`` is
    kept as sent; the router upper-cases it for lookups.
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query_string: bytes = b""
    root_path: str = ""
    http_version: str = "1.1"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None

    # Private: ASGI receive callable for body streaming
    _receive: Receive = field(default=_empty_receive, repr=False)

    # Private: the body, once read
    _cache: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def url(self) -> str:
        """Request path plus query string."""
        if self.query_string:
            return f"{self.path}?{self.query_string.decode('latin-1')}"
        return self.path

    async def body(self) -> bytes:
        """Read the full request body.

        The ASGI receive channel is consumed once; later calls return
        the cached bytes.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        result = b"".join([chunk async for chunk in self.stream()])
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        """Read the body as UTF-8 text."""
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(await self.body())

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(tuple(tuple(pair) for pair in scope.get("headers", ()))),
            query_string=scope.get("query_string", b""),
            root_path=scope.get("root_path", ""),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
        )

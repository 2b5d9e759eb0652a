"""Test helpers for waypoint applications.

``make_request`` builds a ``Request`` for calling the router or the static
responders directly. ``TestClient`` drives an ``App`` through its ASGI
interface — no sockets involved.
"""

from collections.abc import Mapping
from typing import Any

from waypoint.app import App
from waypoint.http.headers import Headers
from waypoint.http.request import Request
from waypoint.http.response import Response


def make_request(
    method: str = "GET",
    url: str = "/",
    *,
    headers: Mapping[str, str] | None = None,
    body: bytes = b"",
) -> Request:
    """Build a Request the way the ASGI boundary would."""
    path, _, query_string = url.partition("?")
    sent = False

    async def receive() -> dict[str, Any]:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    return Request(
        method=method,
        path=path,
        headers=Headers.from_mapping(headers or {}),
        query_string=query_string.encode("latin-1"),
        server=("testserver", 80),
        client=("127.0.0.1", 0),
        _receive=receive,
    )


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Async test client for waypoint applications.

    Returns a plain ``Response`` holding whatever the app sent, with the
    full body already read.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 200
    """

    __slots__ = ("app",)

    def __init__(self, app: App) -> None:
        self.app = app

    async def __aenter__(self) -> "TestClient":
        self.app._ensure_frozen()
        return self

    async def __aexit__(self, *args: object) -> None:
        pass

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        """Send a GET request."""
        return await self.request("GET", path, headers=headers)

    async def head(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        """Send a HEAD request."""
        return await self.request("HEAD", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        """Send a POST request."""
        return await self.request("POST", path, headers=headers, body=body)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        """Send an arbitrary request through the ASGI app."""
        path_part, _, query_string = path.partition("?")

        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ]
        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "path": path_part,
            "raw_path": path_part.encode("latin-1"),
            "query_string": query_string.encode("latin-1"),
            "root_path": "",
            "headers": raw_headers,
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 0),
        }

        request_body = body or b""
        body_sent = False

        async def receive() -> dict[str, Any]:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": request_body, "more_body": False}
            return {"type": "http.disconnect"}

        status = 200
        response_headers: list[tuple[bytes, bytes]] = []
        body_parts: list[bytes] = []

        async def send(message: dict[str, Any]) -> None:
            nonlocal status, response_headers
            if message["type"] == "http.response.start":
                status = message["status"]
                response_headers = list(message.get("headers", []))
            elif message["type"] == "http.response.body":
                body_parts.append(message.get("body", b""))

        await self.app(scope, receive, send)

        content_type = "text/html; charset=utf-8"
        extra_headers: list[tuple[str, str]] = []
        for name_b, value_b in response_headers:
            name = name_b.decode("latin-1")
            value = value_b.decode("latin-1")
            if name == "content-type":
                content_type = value
            else:
                extra_headers.append((name, value))

        return Response(
            body=b"".join(body_parts),
            status=status,
            content_type=content_type,
            headers=tuple(extra_headers),
        )

"""ASGI response sending — translates waypoint responses to ASGI messages.

Handles both single-body responses and lazily streamed bodies.
"""

import logging
from collections.abc import AsyncIterator

from waypoint._internal.asgi import Send
from waypoint.http.response import Response, StreamingResponse

logger = logging.getLogger("waypoint.server")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _raw_headers(
    content_type: str, headers: tuple[tuple[str, str], ...]
) -> list[tuple[bytes, bytes]]:
    raw: list[tuple[bytes, bytes]] = [(b"content-type", content_type.encode("latin-1"))]
    for name, value in headers:
        raw.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    return raw


def _has_header(raw: list[tuple[bytes, bytes]], name: bytes) -> bool:
    return any(key == name for key, _ in raw)


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Translate a Response into ASGI send() calls.

    A ``Content-Length`` already set by the response (e.g. a HEAD or 304
    for a file) is kept; otherwise it is computed from the body.
    """
    raw_headers = _raw_headers(response.content_type, response.headers)
    body = response.body_bytes if _body_allowed(response.status) else b""

    if not _has_header(raw_headers, b"content-length"):
        raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else body,
        }
    )


async def send_streaming_response(response: StreamingResponse, send: Send) -> None:
    """Send a streamed body chunk by chunk.

    Uses chunked transfer encoding unless the response declares its own
    ``Content-Length``. The stream is always closed afterwards, including
    when ``send`` fails because the client went away or the task is
    cancelled. A failure mid-body is logged and re-raised so the ASGI
    server aborts the response rather than ending it as if complete.
    """
    raw_headers = _raw_headers(response.content_type, response.headers)
    if not _has_header(raw_headers, b"content-length"):
        raw_headers.append((b"transfer-encoding", b"chunked"))

    try:
        await send(
            {
                "type": "http.response.start",
                "status": response.status,
                "headers": raw_headers,
            }
        )
        try:
            if isinstance(response.chunks, AsyncIterator):
                async for chunk in response.chunks:
                    if chunk:
                        await send({"type": "http.response.body", "body": chunk, "more_body": True})
            else:
                for chunk in response.chunks:
                    if chunk:
                        await send({"type": "http.response.body", "body": chunk, "more_body": True})
        except Exception:
            # Headers are already out; the body must not end as if complete.
            logger.exception("Error while streaming response body")
            raise
        await send({"type": "http.response.body", "body": b"", "more_body": False})
    finally:
        await response.aclose()

"""HTTP responses with a chainable .with_*() transformation API.

Each transformation returns a new response. Immutable by convention,
built incrementally by design.
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator, Iterator, Mapping
from dataclasses import dataclass, replace
from typing import TypeAlias


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), or None."""
        return _find_header(self.headers, name)

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


@dataclass(frozen=True, slots=True)
class StreamingResponse:
    """A response whose body is produced lazily, chunk by chunk.

    The sender closes ``chunks`` once it is done with them, whether the
    body was fully sent or not, so a file behind an async generator is
    released even when the client goes away mid-stream.
    """

    chunks: AsyncIterator[bytes] | Iterator[bytes]
    status: int = 200
    content_type: str = "application/octet-stream"
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> StreamingResponse:
        """Return a new StreamingResponse with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> StreamingResponse:
        """Return a new StreamingResponse with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> StreamingResponse:
        """Return a new StreamingResponse with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content_type(self, content_type: str) -> StreamingResponse:
        """Return a new StreamingResponse with a different content type."""
        return replace(self, content_type=content_type)

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), or None."""
        return _find_header(self.headers, name)

    async def aclose(self) -> None:
        """Release whatever backs ``chunks``. Safe to call more than once."""
        closer = getattr(self.chunks, "aclose", None) or getattr(self.chunks, "close", None)
        if closer is None:
            return
        result = closer()
        if inspect.isawaitable(result):
            await result

    async def read(self) -> bytes:
        """Drain the body into memory and close the stream."""
        parts: list[bytes] = []
        try:
            if isinstance(self.chunks, AsyncIterator):
                parts.extend([chunk async for chunk in self.chunks])
            else:
                parts.extend(self.chunks)
        finally:
            await self.aclose()
        return b"".join(parts)


# Any response the dispatcher or a static responder can produce
AnyResponse: TypeAlias = Response | StreamingResponse


def _find_header(headers: tuple[tuple[str, str], ...], name: str) -> str | None:
    lowered = name.lower()
    for key, value in headers:
        if key.lower() == lowered:
            return value
    return None

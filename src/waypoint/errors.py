"""Waypoint exception hierarchy.

Shared across the router, the static responders, and the response
boundary so every module raises and catches the same types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, ClassVar

from waypoint.http.response import Response


class WaypointError(Exception):
    """Base for all waypoint-specific errors."""


class ConfigurationError(WaypointError):
    """Raised when a route table or pattern is invalid.

    Always raised at startup, never while dispatching.
    """


class InvalidData(WaypointError):  # noqa: N818
    """Well-formed input that is semantically invalid (422)."""


def reason_phrase(status: int) -> str:
    """Standard reason phrase for *status*, or ``"Error <status>"``."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return f"Error {status}"


@dataclass(frozen=True, slots=True)
class ResponseInit:
    """Overrides merged into the response rendered from an ``HTTPError``.

    ``status`` is accepted for symmetry with a plain response init but is
    never applied: the error's own status always wins.
    """

    status: int | None = None
    headers: tuple[tuple[str, str], ...] = ()
    content_type: str | None = None


@dataclass(frozen=True, slots=True, eq=False)
class HTTPError(WaypointError):
    """An error that maps directly to an HTTP status code.

    Raised by the router and the static responders, or produced by
    ``normalize()`` from any other failure. The response boundary catches
    these and renders them with ``to_response()``.
    """

    name: ClassVar[str] = "HTTPError"

    status: int
    message: str = ""
    cause: Any = field(default=None, repr=False)
    init: ResponseInit | None = None

    def __post_init__(self) -> None:
        if not 100 <= self.status <= 599 or 200 <= self.status <= 299:
            msg = f"HTTPError status must be 1xx, 3xx, 4xx or 5xx, got {self.status}"
            raise ValueError(msg)
        if not self.message:
            object.__setattr__(self, "message", reason_phrase(self.status))

    def __str__(self) -> str:
        return f"{self.status}: {self.message}"

    @property
    def headers(self) -> tuple[tuple[str, str], ...]:
        """Extra response headers carried by the error."""
        return self.init.headers if self.init is not None else ()

    def to_response(self, *, content_type: str = "text/plain; charset=utf-8") -> Response:
        """Render the error: overrides first, own status last."""
        response = Response(body=self.message, content_type=content_type)
        if self.init is not None:
            if self.init.content_type is not None:
                response = response.with_content_type(self.init.content_type)
            for name, value in self.init.headers:
                response = response.with_header(name, value)
        return response.with_status(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched, or the file does not exist."""

    def __init__(self, message: str = "", *, cause: Any = None) -> None:
        super().__init__(status=404, message=message, cause=cause)


class Forbidden(HTTPError):  # noqa: N818
    """403 — the request tried to leave the served directory."""

    def __init__(self, message: str = "", *, cause: Any = None) -> None:
        super().__init__(status=403, message=message, cause=cause)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — the path exists but not for this HTTP method.

    Carries an ``Allow`` header listing the accepted methods.
    """

    def __init__(
        self,
        allowed: frozenset[str] = frozenset(),
        message: str = "",
        *,
        cause: Any = None,
    ) -> None:
        allow_value = ", ".join(sorted(allowed))
        super().__init__(
            status=405,
            message=message,
            cause=cause,
            init=ResponseInit(headers=(("Allow", allow_value),)),
        )

    @property
    def allowed(self) -> frozenset[str]:
        """Methods listed in the ``Allow`` header."""
        for name, value in self.headers:
            if name == "Allow":
                return frozenset(m.strip() for m in value.split(",") if m.strip())
        return frozenset()

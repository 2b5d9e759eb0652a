"""ASGI handler — the response boundary.

Converts the scope to a Request, dispatches through the router, and is
the one place an ``HTTPError`` is turned into a response. Anything that
is not an ``HTTPError`` by the time it gets here is normalized too, and
logged with its traceback.
"""

import logging
from typing import Any

from waypoint._internal.asgi import Receive, Scope, Send
from waypoint.config import AppConfig
from waypoint.errors import HTTPError
from waypoint.http.request import Request
from waypoint.http.response import AnyResponse, Response, StreamingResponse
from waypoint.normalization import normalize
from waypoint.routing.router import Router
from waypoint.server.sender import send_response, send_streaming_response

logger = logging.getLogger("waypoint.server")


def coerce_response(result: Any, config: AppConfig) -> AnyResponse:
    """Turn a handler's return value into something the sender understands.

    Values with no obvious HTTP representation become a 500.
    """
    match result:
        case Response() | StreamingResponse():
            return result
        case str() | bytes():
            return Response(body=result, content_type=config.default_content_type)
        case (str() | bytes() as body, int() as status):
            return Response(body=body, status=status, content_type=config.default_content_type)
        case _:
            msg = f"Handler returned {type(result).__name__}, expected a Response, str or bytes."
            raise HTTPError(status=500, message=msg, cause=result)


def render_error(exc: HTTPError, request: Request, config: AppConfig) -> Response:
    """Render *exc*, logging it at a level that matches its status."""
    cause = exc.cause if isinstance(exc.cause, BaseException) else None
    if exc.status >= 500:
        logger.error(
            "%d %s %s: %s",
            exc.status,
            request.method,
            request.path,
            exc.message,
            exc_info=cause,
        )
    else:
        logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.message)

    if config.debug and cause is not None and exc.status >= 500:
        exc = HTTPError(
            status=exc.status,
            message=f"{type(cause).__name__}: {exc.message}",
            cause=exc.cause,
            init=exc.init,
        )
    return exc.to_response(content_type=config.error_content_type)


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    config: AppConfig,
) -> None:
    """Process a single HTTP request through dispatch and error rendering."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    try:
        response = coerce_response(await router.dispatch(request), config)
    except HTTPError as exc:
        response = render_error(exc, request, config)
    except Exception as exc:
        response = render_error(normalize(exc), request, config)

    if isinstance(response, StreamingResponse):
        if request.method.upper() == "HEAD":
            await response.aclose()
            head_response = Response(
                body=b"",
                status=response.status,
                content_type=response.content_type,
                headers=response.headers,
            )
            await send_response(head_response, send, head=True)
        else:
            await send_streaming_response(response, send)
    else:
        await send_response(response, send, head=request.method.upper() == "HEAD")

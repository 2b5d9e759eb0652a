"""Ordered route table and dispatch.

Routes are tried in declaration order and the first structural match
wins: a method mismatch on that route is a 405 even when a later route
with the same pattern would accept the method.

Resolution is synchronous and returns its failure instead of raising it,
so it can be inspected without exception handling. ``dispatch()`` is the
async boundary that raises.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from waypoint._internal.invoke import invoke
from waypoint.errors import HTTPError, MethodNotAllowed, NotFound
from waypoint.http.request import Request
from waypoint.normalization import normalize
from waypoint.routing.route import HandlerDispatch, MethodDispatch, Route, RouteMatch

logger = logging.getLogger("waypoint.routing")


def resolve(routes: Iterable[Route], request: Request) -> RouteMatch | HTTPError:
    """Find the handler for *request*, or the error explaining why there is none.

    Returns ``NotFound`` when no pattern matches and ``MethodNotAllowed``
    when the first matching route has no handler for the method. Both
    carry the request as ``cause``.
    """
    for candidate in routes:
        params = candidate.pattern.match(request.path)
        if params is None:
            continue

        match candidate.dispatch:
            case HandlerDispatch(handler=handler):
                return RouteMatch(route=candidate, handler=handler, params=params)
            case MethodDispatch() as methods:
                handler = methods.handlers.get(request.method.upper())
                if handler is None:
                    return MethodNotAllowed(methods.allowed, cause=request)
                return RouteMatch(route=candidate, handler=handler, params=params)

    return NotFound(cause=request)


async def dispatch(routes: Iterable[Route], request: Request) -> Any:
    """Resolve *request*, call its handler, and return the result verbatim.

    Raises ``HTTPError`` for 404/405, re-raises an ``HTTPError`` from the
    handler unchanged, and normalizes anything else the handler raises.
    """
    resolved = resolve(routes, request)
    if isinstance(resolved, HTTPError):
        logger.debug("%d %s %s", resolved.status, request.method, request.path)
        raise resolved

    try:
        return await invoke(resolved.handler, request, resolved.params)
    except HTTPError:
        raise
    except Exception as exc:
        raise normalize(exc) from exc


class Router:
    """An ordered, freezable route table.

    Usage::

        router = Router()
        router.add(route("/users", list_users))
        router.add(route("/users/:id", {"GET": show_user}))
        router.compile()
        response = await router.dispatch(request)
    """

    __slots__ = ("_compiled", "_routes")

    def __init__(self, routes: Iterable[Route] = ()) -> None:
        self._routes: list[Route] = list(routes)
        self._compiled = False

    def add(self, route: Route) -> None:
        """Append a route. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        self._routes.append(route)

    def compile(self) -> None:
        """Freeze the table. No more routes can be added."""
        self._compiled = True

    @property
    def compiled(self) -> bool:
        return self._compiled

    @property
    def routes(self) -> Sequence[Route]:
        """Registered routes, in declaration order."""
        return tuple(self._routes)

    def resolve(self, request: Request) -> RouteMatch | HTTPError:
        return resolve(self._routes, request)

    async def dispatch(self, request: Request) -> Any:
        return await dispatch(self._routes, request)

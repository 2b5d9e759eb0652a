"""Route definitions and match results.

A route pairs a compiled pattern with exactly one dispatch form:

- ``HandlerDispatch`` — one handler for every method
- ``MethodDispatch`` — a read-only ``{METHOD: handler}`` map

The two are a tagged union; the router switches on the variant with
``match`` rather than probing attributes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TypeAlias

from waypoint._internal.types import Handler, Params
from waypoint.errors import ConfigurationError
from waypoint.routing.pattern import PathPattern


@dataclass(frozen=True, slots=True)
class HandlerDispatch:
    """Single handler that services every HTTP method."""

    handler: Handler


@dataclass(frozen=True, slots=True)
class MethodDispatch:
    """Per-method handlers. Keys are upper-cased method tokens."""

    handlers: Mapping[str, Handler]

    def __post_init__(self) -> None:
        normalized: dict[str, Handler] = {}
        for method, handler in self.handlers.items():
            token = method.upper()
            if token in normalized:
                msg = f"Method {token!r} declared twice for the same route."
                raise ConfigurationError(msg)
            normalized[token] = handler
        object.__setattr__(self, "handlers", MappingProxyType(normalized))

    @property
    def allowed(self) -> frozenset[str]:
        return frozenset(self.handlers)


Dispatch: TypeAlias = HandlerDispatch | MethodDispatch


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition.

    Created during setup, read concurrently during dispatch.
    """

    pattern: PathPattern
    dispatch: Dispatch
    name: str | None = None

    @property
    def template(self) -> str:
        return self.pattern.template


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful resolution: the route, its handler, the captures."""

    route: Route
    handler: Handler
    params: Params


def route(
    template: str,
    target: Handler | Mapping[str, Handler],
    *,
    name: str | None = None,
) -> Route:
    """Build a route from a template and a handler or method map.

    Usage::

        routes = [
            route("/", index),
            route("/users/:id", {"GET": show_user, "DELETE": delete_user}),
        ]
    """
    dispatch: Dispatch
    if isinstance(target, Mapping):
        dispatch = MethodDispatch(target)
    elif callable(target):
        dispatch = HandlerDispatch(target)
    else:
        msg = f"Route {template!r} needs a callable or a method map, got {type(target).__name__}."
        raise ConfigurationError(msg)
    return Route(pattern=PathPattern.compile(template), dispatch=dispatch, name=name)

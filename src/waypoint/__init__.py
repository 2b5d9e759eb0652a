"""Waypoint — a minimal async HTTP dispatcher with conditional static files.

Ordered routes, first match wins, one error shape at the boundary.

Basic usage::

    from waypoint import App, route

    async def show(request, params):
        return f"item {params['id']}"

    app = App([route("/items/:id", {"GET": show})])
    app.static("/assets", "./public")

The result is an ASGI 3 application; run it with any ASGI server.
"""

import importlib

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Forbidden",
    "HTTPError",
    "InvalidData",
    "MethodNotAllowed",
    "NotFound",
    "PathPattern",
    "Request",
    "Response",
    "Route",
    "Router",
    "StaticDirectory",
    "StreamingResponse",
    "WaypointError",
    "dispatch",
    "normalize",
    "route",
    "serve_directory",
    "serve_file",
]

_LAZY_IMPORTS: dict[str, str] = {
    "App": "waypoint.app",
    "AppConfig": "waypoint.config",
    "ConfigurationError": "waypoint.errors",
    "Forbidden": "waypoint.errors",
    "HTTPError": "waypoint.errors",
    "InvalidData": "waypoint.errors",
    "MethodNotAllowed": "waypoint.errors",
    "NotFound": "waypoint.errors",
    "WaypointError": "waypoint.errors",
    "PathPattern": "waypoint.routing.pattern",
    "Request": "waypoint.http.request",
    "Response": "waypoint.http.response",
    "StreamingResponse": "waypoint.http.response",
    "Route": "waypoint.routing.route",
    "route": "waypoint.routing.route",
    "Router": "waypoint.routing.router",
    "dispatch": "waypoint.routing.router",
    "normalize": "waypoint.normalization",
    "StaticDirectory": "waypoint.static.directory",
    "serve_directory": "waypoint.static.directory",
    "serve_file": "waypoint.static.files",
}


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import waypoint`` fast while providing a flat top-level API.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    return getattr(importlib.import_module(module_name), name)

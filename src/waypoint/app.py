"""Waypoint application class.

Mutable during setup (route registration). Frozen at runtime when
``__call__()`` is first invoked.
"""

import os
import threading
from collections.abc import Callable, Iterable

from waypoint._internal.asgi import Receive, Scope, Send
from waypoint._internal.types import Handler
from waypoint.config import AppConfig
from waypoint.routing.route import Route, route
from waypoint.routing.router import Router
from waypoint.server.handler import handle_request
from waypoint.static.directory import StaticDirectory


class App:
    """The waypoint application: an ordered route table behind ASGI.

    Routes can be passed up front, registered with the decorator, or both;
    either way they are tried in the order they were added::

        app = App()

        @app.route("/users/:id", methods=["GET"])
        async def show_user(request, params):
            return f"user {params['id']}"

        app.static("/assets", "./public")

    Thread safety:
        Setup is single-threaded. The freeze transition uses a Lock +
        double-check so exactly one thread compiles the route table even
        when several workers take their first request at once.
    """

    __slots__ = ("_freeze_lock", "_frozen", "_router", "config")

    def __init__(self, routes: Iterable[Route] = (), config: AppConfig | None = None) -> None:
        self.config = config or AppConfig()
        self._router = Router(routes)
        self._frozen = False
        self._freeze_lock = threading.Lock()

    @property
    def router(self) -> Router:
        return self._router

    def add_route(self, new_route: Route) -> None:
        """Append an already-built route."""
        self._check_not_frozen()
        self._router.add(new_route)

    def route(
        self,
        template: str,
        *,
        methods: Iterable[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            template: Path template. Use ``:name`` for parameters and a
                trailing ``*`` for the rest of the path.
            methods: HTTP methods this handler serves. ``None`` serves
                every method.
            name: Optional route name, for introspection.
        """

        def decorator(func: Handler) -> Handler:
            target = func if methods is None else {method: func for method in methods}
            self.add_route(route(template, target, name=name or func.__name__))
            return func

        return decorator

    def static(self, prefix: str, directory: str | os.PathLike[str], *, name: str | None = None) -> None:
        """Serve *directory* under the URL *prefix*."""
        mount = "/" + prefix.strip("/") if prefix.strip("/") else ""
        handler = StaticDirectory(directory, mount, chunk_size=self.config.static_chunk_size)
        self.add_route(route(f"{mount}/*", handler, name=name))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        await handle_request(scope, receive, send, router=self._router, config=self.config)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                self._ensure_frozen()
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Cannot register routes after the app has started serving."
            raise RuntimeError(msg)

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._router.compile()
            self._frozen = True

"""Tests for waypoint.app — registration, freezing, and ASGI round trips."""

import logging
from typing import Any

import pytest

from waypoint.app import App
from waypoint.config import AppConfig
from waypoint.errors import HTTPError
from waypoint.http.response import Response, StreamingResponse
from waypoint.routing.route import HandlerDispatch, MethodDispatch, route
from waypoint.testing import TestClient


class TestAppRegistration:
    def test_route_decorator(self) -> None:
        app = App()

        @app.route("/")
        def index(request, params):
            return "hello"

        (registered,) = app.router.routes
        assert registered.template == "/"
        assert registered.name == "index"
        assert isinstance(registered.dispatch, HandlerDispatch)

    def test_route_with_methods(self) -> None:
        app = App()

        @app.route("/users", methods=["get", "POST"])
        def users(request, params):
            return "users"

        dispatch = app.router.routes[0].dispatch
        assert isinstance(dispatch, MethodDispatch)
        assert dispatch.allowed == frozenset({"GET", "POST"})

    def test_decorator_returns_function(self) -> None:
        app = App()

        def index(request, params):
            return "hello"

        assert app.route("/")(index) is index

    def test_routes_kept_in_order(self) -> None:
        first = route("/a", lambda request, params: "a")
        app = App([first])

        @app.route("/b")
        def b(request, params):
            return "b"

        assert [r.template for r in app.router.routes] == ["/a", "/b"]

    def test_static_mount(self, tmp_path) -> None:
        app = App()
        app.static("/assets/", tmp_path)
        assert app.router.routes[0].template == "/assets/*"

    def test_cannot_register_after_freeze(self) -> None:
        app = App()
        app._ensure_frozen()
        with pytest.raises(RuntimeError, match="started serving"):
            app.add_route(route("/late", lambda request, params: "late"))

    def test_freeze_is_idempotent(self) -> None:
        app = App()
        app._ensure_frozen()
        app._ensure_frozen()
        assert app.router.compiled


class TestRoundTrip:
    async def test_plain_string(self) -> None:
        app = App()

        @app.route("/")
        def index(request, params):
            return "Hello, World!"

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 200
        assert response.text == "Hello, World!"
        assert response.content_type == "text/html; charset=utf-8"
        assert response.header("content-length") == "13"

    async def test_params_and_query(self) -> None:
        app = App()

        @app.route("/users/:id")
        async def show(request, params):
            return Response(f"{params['id']} {request.query_string.decode()}")

        async with TestClient(app) as client:
            response = await client.get("/users/42?tab=posts")

        assert response.text == "42 tab=posts"

    async def test_tuple_sets_status(self) -> None:
        app = App()

        @app.route("/items", methods=["POST"])
        def create(request, params):
            return ("created", 201)

        async with TestClient(app) as client:
            response = await client.post("/items")

        assert response.status == 201
        assert response.text == "created"

    async def test_request_body(self) -> None:
        app = App()

        @app.route("/echo", methods=["POST"])
        async def echo(request, params):
            return await request.body()

        async with TestClient(app) as client:
            response = await client.post("/echo", body=b"ping")

        assert response.body == b"ping"

    async def test_streaming_response(self) -> None:
        app = App()

        async def chunks():
            yield b"one "
            yield b"two"

        @app.route("/stream")
        def stream(request, params):
            return StreamingResponse(chunks(), content_type="text/plain")

        async with TestClient(app) as client:
            response = await client.get("/stream")

        assert response.body == b"one two"
        assert response.header("transfer-encoding") == "chunked"

    async def test_head_drops_body(self) -> None:
        app = App()

        @app.route("/")
        def index(request, params):
            return "Hello"

        async with TestClient(app) as client:
            response = await client.head("/")

        assert response.body == b""
        assert response.header("content-length") == "5"


class TestErrorRendering:
    async def test_404(self) -> None:
        async with TestClient(App()) as client:
            response = await client.get("/missing")

        assert response.status == 404
        assert response.text == "Not Found"
        assert response.content_type == "text/plain; charset=utf-8"

    async def test_405_has_allow_header(self) -> None:
        app = App()

        @app.route("/items", methods=["GET", "POST"])
        def items(request, params):
            return "items"

        async with TestClient(app) as client:
            response = await client.request("DELETE", "/items")

        assert response.status == 405
        assert response.header("allow") == "GET, POST"

    async def test_handler_http_error(self) -> None:
        app = App()

        @app.route("/teapot")
        def teapot(request, params):
            raise HTTPError(418, "short and stout")

        async with TestClient(app) as client:
            response = await client.get("/teapot")

        assert response.status == 418
        assert response.text == "short and stout"

    async def test_classified_failure(self) -> None:
        app = App()

        @app.route("/parse")
        def parse(request, params):
            raise ValueError("not a number")

        async with TestClient(app) as client:
            response = await client.get("/parse")

        assert response.status == 400
        assert response.text == "not a number"

    async def test_unclassified_failure_is_logged(self, caplog) -> None:
        app = App()

        @app.route("/boom")
        def boom(request, params):
            raise KeyError("missing")

        with caplog.at_level(logging.ERROR, logger="waypoint.server"):
            async with TestClient(app) as client:
                response = await client.get("/boom")

        assert response.status == 500
        assert "KeyError" not in response.text
        assert any(record.exc_info for record in caplog.records)

    async def test_debug_names_the_exception(self) -> None:
        app = App(config=AppConfig(debug=True))

        @app.route("/boom")
        def boom(request, params):
            raise KeyError("missing")

        async with TestClient(app) as client:
            response = await client.get("/boom")

        assert response.status == 500
        assert response.text.startswith("KeyError: ")

    async def test_unusable_return_value_is_500(self) -> None:
        app = App()

        @app.route("/weird")
        def weird(request, params):
            return {"not": "a response"}

        async with TestClient(app) as client:
            response = await client.get("/weird")

        assert response.status == 500
        assert "dict" in response.text

    async def test_custom_error_content_type(self) -> None:
        app = App(config=AppConfig(error_content_type="text/html; charset=utf-8"))
        async with TestClient(app) as client:
            response = await client.get("/missing")

        assert response.content_type == "text/html; charset=utf-8"


class TestStaticFiles:
    @pytest.fixture
    def app(self, tmp_path) -> App:
        (tmp_path / "hello.txt").write_text("Hello, file!")
        (tmp_path / "css").mkdir()
        (tmp_path / "css" / "site.css").write_text("body {}")
        app = App()
        app.static("/assets", tmp_path)
        return app

    async def test_serves_file(self, app) -> None:
        async with TestClient(app) as client:
            response = await client.get("/assets/hello.txt")

        assert response.status == 200
        assert response.body == b"Hello, file!"
        assert response.content_type == "text/plain; charset=utf-8"
        assert response.header("content-length") == "12"
        assert response.header("transfer-encoding") is None

    async def test_etag_round_trip(self, app) -> None:
        async with TestClient(app) as client:
            first = await client.get("/assets/hello.txt")
            etag = first.header("etag")
            second = await client.get("/assets/hello.txt", headers={"If-None-Match": etag})

        assert etag is not None
        assert second.status == 304
        assert second.body == b""
        assert second.header("etag") == etag

    async def test_head(self, app) -> None:
        async with TestClient(app) as client:
            response = await client.head("/assets/hello.txt")

        assert response.status == 200
        assert response.body == b""
        assert response.header("content-length") == "12"

    async def test_redirect(self, app) -> None:
        async with TestClient(app) as client:
            response = await client.get("/assets//css/site.css")

        assert response.status == 308
        assert response.header("location") == "/assets/css/site.css"

    async def test_traversal(self, app) -> None:
        async with TestClient(app) as client:
            response = await client.get("/assets/../secret")

        assert response.status == 403

    async def test_missing(self, app) -> None:
        async with TestClient(app) as client:
            response = await client.get("/assets/nope.txt")

        assert response.status == 404

    async def test_post_is_405(self, app) -> None:
        async with TestClient(app) as client:
            response = await client.post("/assets/hello.txt")

        assert response.status == 405
        assert response.header("allow") == "GET, HEAD"


class TestASGI:
    async def test_lifespan(self) -> None:
        app = App()
        incoming = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return incoming.pop(0)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)

        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
        assert app.router.compiled

    async def test_first_request_freezes(self) -> None:
        app = App()
        async with TestClient(app) as client:
            await client.get("/")

        with pytest.raises(RuntimeError):
            app.add_route(route("/late", lambda request, params: "late"))

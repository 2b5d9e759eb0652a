"""Tests for waypoint.static.directory — path canonicalization and traversal."""

from unittest import mock

import pytest

from waypoint.errors import Forbidden, MethodNotAllowed, NotFound
from waypoint.http.response import Response, StreamingResponse
from waypoint.static import directory
from waypoint.static.directory import (
    StaticDirectory,
    is_traversal,
    normalize_path,
    serve_directory,
)
from waypoint.testing import make_request


@pytest.fixture
def site(tmp_path):
    """A served root with a nested file, plus a secret outside it."""
    root = tmp_path / "public"
    root.mkdir()
    (root / "index.html").write_text("<h1>Home</h1>")
    css = root / "css"
    css.mkdir()
    (css / "main.css").write_text("h1 { color: red; }")
    (tmp_path / "secret.txt").write_text("do not serve")
    return root


class TestServeDirectory:
    async def test_serves_file(self, site) -> None:
        response = await serve_directory(make_request("GET", "/index.html"), site)
        assert isinstance(response, StreamingResponse)
        assert await response.read() == b"<h1>Home</h1>"
        assert response.content_type == "text/html; charset=utf-8"

    async def test_serves_nested_file(self, site) -> None:
        response = await serve_directory(make_request("GET", "/css/main.css"), site)
        assert await response.read() == b"h1 { color: red; }"

    async def test_head(self, site) -> None:
        response = await serve_directory(make_request("HEAD", "/index.html"), site)
        assert isinstance(response, Response)
        assert response.body == b""
        assert response.header("Content-Length") == "13"

    async def test_missing_file(self, site) -> None:
        with pytest.raises(NotFound):
            await serve_directory(make_request("GET", "/nope.html"), site)

    async def test_null_byte_is_not_found(self, site) -> None:
        with pytest.raises(NotFound) as exc_info:
            await serve_directory(make_request("GET", "/a\x00.txt"), site)
        assert isinstance(exc_info.value.cause, ValueError)

    async def test_root_directory_is_not_a_file(self, site) -> None:
        with pytest.raises(NotFound):
            await serve_directory(make_request("GET", "/"), site)

    async def test_rejects_post(self, site) -> None:
        with pytest.raises(MethodNotAllowed):
            await serve_directory(make_request("POST", "/index.html"), site)


class TestRedirects:
    async def test_repeated_slashes(self, site) -> None:
        response = await serve_directory(make_request("GET", "//css///main.css"), site)
        assert response.status == 308
        assert response.header("Location") == "/css/main.css"

    async def test_redirect_keeps_query(self, site) -> None:
        response = await serve_directory(make_request("GET", "/css//main.css?v=2"), site)
        assert response.header("Location") == "/css/main.css?v=2"

    async def test_trailing_slash(self, site) -> None:
        response = await serve_directory(make_request("GET", "/css/"), site)
        assert response.status == 308
        assert response.header("Location") == "/css"

    async def test_collapse_happens_before_trailing_slash(self, site) -> None:
        response = await serve_directory(make_request("GET", "/css//"), site)
        assert response.header("Location") == "/css/"

    async def test_prefix_preserved(self, site) -> None:
        request = make_request("GET", "/assets/css//main.css")
        response = await serve_directory(request, site, prefix="/assets")
        assert response.header("Location") == "/assets/css/main.css"


class TestTraversal:
    @pytest.mark.parametrize(
        "path",
        [
            "/../secret.txt",
            "/../../etc/passwd",
            "/css/../../secret.txt",
            "/..",
            "/css/..\\..\\secret.txt",
        ],
    )
    async def test_forbidden(self, site, path: str) -> None:
        request = make_request("GET", path)
        with pytest.raises(Forbidden) as exc_info:
            await serve_directory(request, site)
        assert exc_info.value.status == 403
        assert exc_info.value.cause is request

    async def test_never_reaches_file_io(self, site) -> None:
        with mock.patch.object(directory, "serve_file") as serve_file:
            with pytest.raises(Forbidden):
                await serve_directory(make_request("GET", "/css/../../secret.txt"), site)
        serve_file.assert_not_called()

    async def test_repeated_separator_traversal_redirects_then_forbids(self, site) -> None:
        first = await serve_directory(make_request("GET", "//..//secret.txt"), site)
        assert first.status == 308
        location = first.header("Location")
        assert location == "/../secret.txt"
        with pytest.raises(Forbidden):
            await serve_directory(make_request("GET", location), site)

    async def test_dotted_names_are_fine(self, site) -> None:
        (site / "..hidden").write_text("ok")
        response = await serve_directory(make_request("GET", "/..hidden"), site)
        assert await response.read() == b"ok"

    async def test_symlink_out_of_root_is_forbidden(self, site) -> None:
        (site / "up").symlink_to(site.parent, target_is_directory=True)
        request = make_request("GET", "/up/secret.txt")
        with pytest.raises(Forbidden) as exc_info:
            await serve_directory(request, site)
        assert exc_info.value.cause is request

    async def test_symlinked_file_out_of_root_is_forbidden(self, site) -> None:
        (site / "leak.txt").symlink_to(site.parent / "secret.txt")
        with pytest.raises(Forbidden):
            await serve_directory(make_request("GET", "/leak.txt"), site)

    async def test_symlink_inside_root_is_served(self, site) -> None:
        (site / "styles").symlink_to(site / "css", target_is_directory=True)
        response = await serve_directory(make_request("GET", "/styles/main.css"), site)
        assert await response.read() == b"h1 { color: red; }"

    async def test_root_reached_through_symlink(self, site, tmp_path) -> None:
        alias = tmp_path / "alias"
        alias.symlink_to(site, target_is_directory=True)
        response = await serve_directory(make_request("GET", "/index.html"), alias)
        assert await response.read() == b"<h1>Home</h1>"


class TestStaticDirectory:
    async def test_handler_serves_under_prefix(self, site) -> None:
        handler = StaticDirectory(site, "/static")
        response = await handler(make_request("GET", "/static/css/main.css"), {"*": "css/main.css"})
        assert await response.read() == b"h1 { color: red; }"
        assert handler.root == site.resolve()


class TestHelpers:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("/a//b", "/a/b"), ("///", "/"), ("/a/b", "/a/b"), ("", "")],
    )
    def test_normalize_path(self, raw: str, expected: str) -> None:
        assert normalize_path(raw) == expected

    def test_is_traversal(self) -> None:
        assert is_traversal("../x")
        assert is_traversal("a/../../x")
        assert is_traversal("a\\..\\x")
        assert not is_traversal("a/..b/x")
        assert not is_traversal("a/b")

"""Serve files from a root directory by URL path.

The URL path is canonicalized before anything touches the disk:

1. repeated slashes are collapsed, with a 308 to the collapsed URL
2. a trailing slash is dropped, with a 308 to the bare URL
3. any ``..`` segment left after that is a 403

Only then is the path joined onto the root. The join is resolved with
symlinks followed and must still lie under the resolved root (403
otherwise) before it is handed to ``serve_file``.
"""

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path

import anyio

from waypoint.errors import Forbidden, MethodNotAllowed, NotFound
from waypoint.http.request import Request
from waypoint.http.response import AnyResponse, Response
from waypoint.normalization import normalize
from waypoint.static.files import DEFAULT_CHUNK_SIZE, SAFE_METHODS, serve_file

logger = logging.getLogger("waypoint.static")

_REPEATED_SLASHES = re.compile(r"/{2,}")
_SEGMENT_SEPARATORS = re.compile(r"[/\\]")


def normalize_path(path: str) -> str:
    """Collapse runs of ``/`` into one."""
    return _REPEATED_SLASHES.sub("/", path)


def is_traversal(relative: str) -> bool:
    """Whether *relative* climbs out of its root via a ``..`` segment."""
    return ".." in _SEGMENT_SEPARATORS.split(relative)


def redirect(location: str) -> Response:
    """Permanent redirect that preserves the request method."""
    return Response(body="", status=308).with_header("Location", location)


async def resolve_within(root: str | os.PathLike[str], relative: str) -> Path | None:
    """Real path of *relative* under *root*, or None if it escapes *root*.

    Symlinks are followed on both sides, so a link inside the root that
    points outside it does not count as inside.
    """
    try:
        real_root = Path(await anyio.Path(root).resolve())
        target = Path(await anyio.Path(real_root, relative).resolve())
    except ValueError as exc:
        raise NotFound(cause=exc) from exc
    except OSError as exc:
        raise normalize(exc) from exc

    if not target.is_relative_to(real_root):
        return None
    return target


def _with_query(path: str, request: Request) -> str:
    if request.query_string:
        return f"{path}?{request.query_string.decode('latin-1')}"
    return path


async def serve_directory(
    request: Request,
    root: str | os.PathLike[str],
    *,
    prefix: str = "",
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> AnyResponse:
    """Serve the file under *root* that the request path names.

    *prefix* is the URL path the directory is mounted at; it is removed
    before resolving and put back on redirect locations.

    Raises ``MethodNotAllowed`` for anything but GET/HEAD, ``Forbidden``
    for traversal attempts (including through symlinks that leave the
    root), and whatever ``serve_file`` raises.
    """
    if request.method.upper() not in SAFE_METHODS:
        raise MethodNotAllowed(SAFE_METHODS, cause=request)

    mount = "/" + prefix.strip("/") if prefix.strip("/") else ""
    path = request.path
    if mount and (path == mount or path.startswith(mount + "/")):
        path = path[len(mount) :]
    if not path.startswith("/"):
        path = "/" + path

    normalized = normalize_path(path)
    if normalized != path:
        return redirect(_with_query(mount + normalized, request))

    if len(normalized) > 1 and normalized.endswith("/"):
        return redirect(_with_query(mount + normalized.rstrip("/"), request))

    relative = normalized.lstrip("/")
    if is_traversal(relative):
        logger.debug("403 %s %s: traversal attempt", request.method, request.path)
        raise Forbidden(cause=request)

    target = await resolve_within(root, relative)
    if target is None:
        logger.debug("403 %s %s: resolves outside the root", request.method, request.path)
        raise Forbidden(cause=request)

    return await serve_file(request, target, chunk_size=chunk_size)


class StaticDirectory:
    """Route handler that serves a directory.

    Mount it on a wildcard route::

        routes = [
            route("/static/*", StaticDirectory("./public", prefix="/static")),
        ]
    """

    __slots__ = ("_chunk_size", "_prefix", "_root")

    def __init__(
        self,
        root: str | os.PathLike[str],
        prefix: str = "",
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._root = Path(root).resolve()
        self._prefix = prefix
        self._chunk_size = chunk_size

    @property
    def root(self) -> Path:
        return self._root

    async def __call__(self, request: Request, params: Mapping[str, str]) -> AnyResponse:
        return await serve_directory(
            request,
            self._root,
            prefix=self._prefix,
            chunk_size=self._chunk_size,
        )

"""Conditional file responses.

Serves a single file with ``ETag`` / ``Last-Modified`` validators and
answers conditional GETs with a body-less 304. Metadata is read from the
file system on every request; nothing is cached.

Security: callers are responsible for deciding *which* path to serve.
``serve_directory`` does that for URL paths under a root directory.
"""

import hashlib
import logging
import mimetypes
import os
import stat
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime, parsedate_to_datetime

import anyio

from waypoint.errors import MethodNotAllowed, NotFound
from waypoint.http.headers import Headers
from waypoint.http.request import Request
from waypoint.http.response import AnyResponse, Response, StreamingResponse
from waypoint.normalization import normalize

logger = logging.getLogger("waypoint.static")

SAFE_METHODS = frozenset({"GET", "HEAD"})
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# HTTP dates have whole-second precision; mtimes do not.
MODIFIED_SINCE_TOLERANCE = timedelta(seconds=1)


@dataclass(frozen=True, slots=True)
class FileMetadata:
    """What the validators are computed from. Read fresh per request."""

    size: int
    modified_at: datetime | None = None
    etag: str | None = None

    @classmethod
    def from_stat(cls, result: os.stat_result) -> "FileMetadata":
        """Build from an ``os.stat_result``."""
        return cls(
            size=result.st_size,
            modified_at=datetime.fromtimestamp(result.st_mtime, tz=UTC),
            etag=compute_etag(result.st_size, result.st_mtime_ns),
        )


@dataclass(frozen=True, slots=True)
class RequestValidators:
    """Cache validators sent by the client."""

    if_none_match: str | None = None
    if_modified_since: datetime | None = None

    @classmethod
    def from_headers(cls, headers: Headers) -> "RequestValidators":
        return cls(
            if_none_match=headers.get("if-none-match"),
            if_modified_since=parse_http_date(headers.get("if-modified-since")),
        )


def compute_etag(size: int, mtime_ns: int) -> str:
    """Weak validator derived from size and modification time."""
    digest = hashlib.sha1(f"{size}:{mtime_ns}".encode("ascii"), usedforsecurity=False)
    return f'W/"{size:x}-{digest.hexdigest()[:16]}"'


def format_http_date(moment: datetime) -> str:
    """IMF-fixdate, e.g. ``Sun, 06 Nov 1994 08:49:37 GMT``."""
    return format_datetime(moment.astimezone(UTC), usegmt=True)


def parse_http_date(value: str | None) -> datetime | None:
    """Parse an HTTP date header. Unparseable values count as absent."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def content_type_for(path: str | os.PathLike[str]) -> str:
    """Content type from the file extension, with a charset for text."""
    content_type, _ = mimetypes.guess_type(str(path))
    if content_type is None:
        return DEFAULT_CONTENT_TYPE
    if content_type.startswith("text/"):
        return f"{content_type}; charset=utf-8"
    return content_type


def etag_matches(if_none_match: str, etag: str) -> bool:
    """Weak comparison of an ``If-None-Match`` header against *etag*."""
    if if_none_match.strip() == "*":
        return True
    target = etag.removeprefix("W/")
    return any(
        candidate.strip().removeprefix("W/") == target
        for candidate in if_none_match.split(",")
    )


def is_not_modified(validators: RequestValidators, metadata: FileMetadata) -> bool:
    """Whether the client's cached copy is still good.

    ``If-None-Match`` takes precedence; when it is sent, ``If-Modified-Since``
    is not consulted at all.
    """
    if validators.if_none_match is not None:
        if metadata.etag is None:
            return False
        return etag_matches(validators.if_none_match, metadata.etag)

    if validators.if_modified_since is not None and metadata.modified_at is not None:
        return metadata.modified_at <= validators.if_modified_since + MODIFIED_SINCE_TOLERANCE

    return False


def file_headers(metadata: FileMetadata) -> tuple[tuple[str, str], ...]:
    """Headers sent with every response for the file, 200 or 304."""
    headers = [
        ("Accept-Ranges", "none"),
        ("Content-Length", str(metadata.size)),
    ]
    if metadata.modified_at is not None:
        headers.append(("Last-Modified", format_http_date(metadata.modified_at)))
    if metadata.etag is not None:
        headers.append(("ETag", metadata.etag))
    return tuple(headers)


async def read_chunks(
    path: str | os.PathLike[str], chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncGenerator[bytes, None]:
    """Yield the file's bytes lazily.

    The file is opened on first iteration and closed when the generator
    finishes or is ``aclose()``d.
    """
    async with await anyio.open_file(path, "rb") as file:
        while chunk := await file.read(chunk_size):
            yield chunk


async def stat_file(path: str | os.PathLike[str]) -> FileMetadata:
    """Stat *path*, raising ``NotFound`` unless it is a regular file.

    A path the OS cannot even represent (an embedded NUL) is not found
    either.
    """
    try:
        result = await anyio.Path(path).stat()
    except (FileNotFoundError, NotADirectoryError, ValueError) as exc:
        raise NotFound(cause=exc) from exc
    except OSError as exc:
        raise normalize(exc) from exc

    if not stat.S_ISREG(result.st_mode):
        raise NotFound()
    return FileMetadata.from_stat(result)


async def serve_file(
    request: Request,
    path: str | os.PathLike[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> AnyResponse:
    """Serve *path* for a GET or HEAD request.

    Returns a 304 ``Response`` when the client's validators still hold, a
    body-less 200 ``Response`` for HEAD, and a 200 ``StreamingResponse``
    otherwise.

    Raises ``MethodNotAllowed`` for other methods and ``NotFound`` when
    *path* is not a regular file.
    """
    method = request.method.upper()
    if method not in SAFE_METHODS:
        raise MethodNotAllowed(SAFE_METHODS, cause=request)

    metadata = await stat_file(path)
    headers = file_headers(metadata)
    content_type = content_type_for(path)

    if is_not_modified(RequestValidators.from_headers(request.headers), metadata):
        logger.debug("304 %s %s", method, request.path)
        return Response(body=b"", status=304, content_type=content_type, headers=headers)

    if method == "HEAD":
        return Response(body=b"", status=200, content_type=content_type, headers=headers)

    return StreamingResponse(
        chunks=read_chunks(path, chunk_size),
        status=200,
        content_type=content_type,
        headers=headers,
    )

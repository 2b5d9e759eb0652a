"""Error normalization — any failure in, one ``HTTPError`` out.

Classification is two table lookups. First the error is tagged with an
``ErrorKind`` by walking its MRO against ``KIND_BY_TYPE`` (falling back to
``KIND_BY_ERRNO`` for bare ``OSError``s), then ``STATUS_BY_KIND`` gives the
status. Both tables are built at import time and never mutated, so
concurrent requests read them without locking.

Usage::

    try:
        ...
    except Exception as exc:
        raise normalize(exc) from exc
"""

import enum
import errno
from types import MappingProxyType
from typing import Any

import anyio

from waypoint.errors import HTTPError, InvalidData, reason_phrase


class ErrorKind(enum.Enum):
    """What went wrong, independent of which exception class said so."""

    MALFORMED = "malformed"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INVALID_DATA = "invalid_data"
    ADDRESS_UNAVAILABLE = "address_unavailable"
    UPSTREAM_FAILURE = "upstream_failure"
    BUSY = "busy"
    TIMED_OUT = "timed_out"
    UNCLASSIFIED = "unclassified"


STATUS_BY_KIND: MappingProxyType[ErrorKind, int] = MappingProxyType(
    {
        ErrorKind.MALFORMED: 400,
        ErrorKind.PERMISSION_DENIED: 403,
        ErrorKind.NOT_FOUND: 404,
        ErrorKind.ALREADY_EXISTS: 409,
        ErrorKind.INVALID_DATA: 422,
        ErrorKind.ADDRESS_UNAVAILABLE: 400,
        ErrorKind.UPSTREAM_FAILURE: 502,
        ErrorKind.BUSY: 503,
        ErrorKind.TIMED_OUT: 504,
        ErrorKind.UNCLASSIFIED: 500,
    }
)

# Exact classes only; subclasses are resolved through the MRO walk.
KIND_BY_TYPE: MappingProxyType[type[BaseException], ErrorKind] = MappingProxyType(
    {
        SyntaxError: ErrorKind.MALFORMED,
        TypeError: ErrorKind.MALFORMED,
        ValueError: ErrorKind.MALFORMED,
        OverflowError: ErrorKind.MALFORMED,
        PermissionError: ErrorKind.PERMISSION_DENIED,
        FileNotFoundError: ErrorKind.NOT_FOUND,
        FileExistsError: ErrorKind.ALREADY_EXISTS,
        InvalidData: ErrorKind.INVALID_DATA,
        ConnectionError: ErrorKind.UPSTREAM_FAILURE,
        EOFError: ErrorKind.UPSTREAM_FAILURE,
        anyio.EndOfStream: ErrorKind.UPSTREAM_FAILURE,
        anyio.BrokenResourceError: ErrorKind.UPSTREAM_FAILURE,
        anyio.IncompleteRead: ErrorKind.UPSTREAM_FAILURE,
        anyio.BusyResourceError: ErrorKind.BUSY,
        BlockingIOError: ErrorKind.BUSY,
        TimeoutError: ErrorKind.TIMED_OUT,
    }
)

KIND_BY_ERRNO: MappingProxyType[int, ErrorKind] = MappingProxyType(
    {
        errno.EACCES: ErrorKind.PERMISSION_DENIED,
        errno.EPERM: ErrorKind.PERMISSION_DENIED,
        errno.ENOENT: ErrorKind.NOT_FOUND,
        errno.EEXIST: ErrorKind.ALREADY_EXISTS,
        errno.EADDRNOTAVAIL: ErrorKind.ADDRESS_UNAVAILABLE,
        errno.EADDRINUSE: ErrorKind.ADDRESS_UNAVAILABLE,
        errno.ECONNREFUSED: ErrorKind.UPSTREAM_FAILURE,
        errno.ECONNRESET: ErrorKind.UPSTREAM_FAILURE,
        errno.EPIPE: ErrorKind.UPSTREAM_FAILURE,
        errno.EPROTO: ErrorKind.UPSTREAM_FAILURE,
        errno.EBUSY: ErrorKind.BUSY,
        errno.ETIMEDOUT: ErrorKind.TIMED_OUT,
    }
)


def classify(error: Any) -> ErrorKind:
    """Tag *error* with the kind of failure it represents."""
    if isinstance(error, BaseExceptionGroup) and len(error.exceptions) == 1:
        return classify(error.exceptions[0])
    if not isinstance(error, BaseException):
        return ErrorKind.UNCLASSIFIED

    for cls in type(error).__mro__:
        kind = KIND_BY_TYPE.get(cls)
        if kind is not None:
            break
    else:
        kind = ErrorKind.UNCLASSIFIED

    # Plain OSError (and subclasses without their own entry) carry the
    # real reason in errno.
    if kind is ErrorKind.UNCLASSIFIED and isinstance(error, OSError) and error.errno is not None:
        return KIND_BY_ERRNO.get(error.errno, ErrorKind.UNCLASSIFIED)
    return kind


def status_for(error: Any) -> int:
    """HTTP status *error* would be normalized to."""
    if isinstance(error, HTTPError):
        return error.status
    return STATUS_BY_KIND[classify(error)]


def normalize(error: Any) -> HTTPError:
    """Map any failure to an ``HTTPError``. Never raises.

    ``HTTPError`` instances come back unchanged, also when they arrive
    as the only member of an exception group (an anyio task group wraps
    whatever its child raised). Everything else becomes a new
    ``HTTPError`` whose ``cause`` is *error* and whose message is
    *error*'s own, or the reason phrase when it has none.
    """
    if isinstance(error, HTTPError):
        return error
    if isinstance(error, BaseExceptionGroup) and len(error.exceptions) == 1:
        return normalize(error.exceptions[0])

    status = STATUS_BY_KIND[classify(error)]
    return HTTPError(status=status, message=_message_of(error) or reason_phrase(status), cause=error)


def _message_of(error: Any) -> str:
    if isinstance(error, OSError) and error.strerror:
        return error.strerror
    try:
        return str(error)
    except Exception:  # noqa: BLE001
        return ""

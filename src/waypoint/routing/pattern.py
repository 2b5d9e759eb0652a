"""Compiled path patterns.

A template is a ``/``-separated list of segments::

    "/users"            literal
    "/users/:id"        named parameter, one segment
    "/files/*"          trailing wildcard, rest of the path

Matching is purely structural: one pass over the path segments, no
backtracking, no regular expressions.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from urllib.parse import urlsplit

from waypoint.errors import ConfigurationError

# Capture-set key for the trailing wildcard
WILDCARD = "*"


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a path template.

    Literal:   ``users``  (kind="literal", value="users")
    Param:     ``:id``    (kind="param", value="id")
    Wildcard:  ``*``      (kind="wildcard", value="*")
    """

    value: str
    kind: str = "literal"

    @property
    def is_param(self) -> bool:
        return self.kind == "param"

    @property
    def is_wildcard(self) -> bool:
        return self.kind == "wildcard"


def parse_template(template: str) -> tuple[PathSegment, ...]:
    """Parse a path template into segments.

    Examples::

        "/"             -> (PathSegment(""),)
        "/users/:id"    -> (PathSegment("users"), PathSegment("id", "param"))
        "/files/*"      -> (PathSegment("files"), PathSegment("*", "wildcard"))

    Raises ``ConfigurationError`` for templates that could never match
    predictably: missing leading slash, a wildcard that is not last,
    invalid or duplicate parameter names.
    """
    if not template.startswith("/"):
        msg = f"Path template {template!r} must start with '/'."
        raise ConfigurationError(msg)

    parts = template[1:].split("/")
    segments: list[PathSegment] = []
    seen: set[str] = set()
    for index, part in enumerate(parts):
        if part == WILDCARD:
            if index != len(parts) - 1:
                msg = f"Wildcard '*' must be the last segment in {template!r}."
                raise ConfigurationError(msg)
            segments.append(PathSegment(WILDCARD, "wildcard"))
        elif part.startswith(":"):
            name = part[1:]
            if not name.isidentifier():
                msg = f"Invalid parameter name {name!r} in {template!r}."
                raise ConfigurationError(msg)
            if name in seen:
                msg = f"Duplicate parameter {name!r} in {template!r}."
                raise ConfigurationError(msg)
            seen.add(name)
            segments.append(PathSegment(name, "param"))
        else:
            segments.append(PathSegment(part))
    return tuple(segments)


def path_of(url: str) -> str:
    """Reduce a path or absolute URL to its path, dropping query and fragment."""
    if url.startswith("/"):
        return url.split("#", 1)[0].split("?", 1)[0]
    return urlsplit(url).path or "/"


@dataclass(frozen=True, slots=True)
class PathPattern:
    """An immutable, compiled path template.

    Usage::

        pattern = PathPattern.compile("/foo/:bar")
        pattern.match("/foo/123")   # {"bar": "123"}
        pattern.match("/foo")       # None
    """

    template: str
    segments: tuple[PathSegment, ...]

    @classmethod
    def compile(cls, template: str) -> PathPattern:
        return cls(template=template, segments=parse_template(template))

    @property
    def has_wildcard(self) -> bool:
        return bool(self.segments) and self.segments[-1].is_wildcard

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(s.value for s in self.segments if s.is_param or s.is_wildcard)

    def match(self, url: str) -> Mapping[str, str] | None:
        """Match *url* and return its captures, or None.

        The capture set is read-only and ordered as the template declares
        its parameters.
        """
        path = path_of(url)
        if not path.startswith("/"):
            return None
        parts = path[1:].split("/")
        segments = self.segments
        fixed = len(segments) - 1 if self.has_wildcard else len(segments)

        if len(parts) < fixed or (not self.has_wildcard and len(parts) != fixed):
            return None

        captures: dict[str, str] = {}
        for segment, part in zip(segments[:fixed], parts, strict=False):
            if segment.is_param:
                if not part:
                    return None
                captures[segment.value] = part
            elif segment.value != part:
                return None

        if self.has_wildcard:
            captures[WILDCARD] = "/".join(parts[fixed:])
        return MappingProxyType(captures)

    def __str__(self) -> str:
        return self.template

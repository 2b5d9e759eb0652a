"""Shared type aliases used across waypoint modules."""

from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

# Path parameters captured by a pattern match
Params: TypeAlias = Mapping[str, str]

# Route handler, called as ``handler(request, params)``, sync or async
Handler: TypeAlias = Callable[..., Any]

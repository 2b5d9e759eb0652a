"""Call sync or async handlers uniformly.

Route handlers can be ``def`` or ``async def``; the dispatcher awaits
whatever comes back when it is awaitable.

Usage::

    from waypoint._internal.invoke import invoke

    result = await invoke(handler, request, params)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result

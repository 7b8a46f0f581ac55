"""Invoke helpers: call sync or async callbacks uniformly.

Endpoint callbacks can be ``def`` or ``async def`` and may accept fewer
positional arguments than perch has to offer. Both checks live here so
the middleware never repeats them.

Usage::

    from perch._internal.invoke import invoke_positional

    result = await invoke_positional(callback, request, response, captures)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's a coroutine."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def positional_arity(handler: Any) -> int | None:
    """Number of positional arguments *handler* accepts.

    Returns ``None`` when the handler takes ``*args`` (no limit) or its
    signature cannot be inspected (some builtins).
    """
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return None

    count = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return count


async def invoke_positional(handler: Any, *args: Any) -> Any:
    """Call *handler* with as many leading *args* as it accepts.

    A callback declared as ``def endpoint(request)`` receives only the
    request; ``def endpoint(request, response, captures)`` receives all
    three.
    """
    arity = positional_arity(handler)
    if arity is not None:
        args = args[:arity]
    return await invoke(handler, *args)

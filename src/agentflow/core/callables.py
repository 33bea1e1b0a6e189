"""Helpers for invoking user-supplied callables from the event loop."""

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable

import anyio


def is_async_callable(fn: Any) -> bool:
    """
    Check if a callable is async (coroutine function).

    Handles plain ``async def`` functions, ``functools.partial`` wrappers
    around them and objects whose ``__call__`` is a coroutine function.
    """
    if inspect.iscoroutinefunction(fn):
        return True

    if isinstance(fn, functools.partial):
        return is_async_callable(fn.func)

    call_method = getattr(fn, "__call__", None)
    if call_method is not None and inspect.iscoroutinefunction(call_method):
        return True

    return False


def positional_arity(fn: Callable[..., Any]) -> tuple[int, float]:
    """Return ``(required, maximum)`` positional argument counts for ``fn``.

    ``maximum`` is ``inf`` when the callable accepts ``*args``. Callables
    without an introspectable signature are assumed to take one argument.
    """
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return 1, 1

    required = 0
    maximum: float = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            maximum = float("inf")
        elif parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            maximum += 1
            if parameter.default is inspect.Parameter.empty:
                required += 1
    return required, maximum


def accepts_positional(fn: Callable[..., Any], count: int) -> bool:
    required, maximum = positional_arity(fn)
    return required <= count <= maximum


async def call_maybe_async(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Await ``fn`` when it is async, otherwise run it in a worker thread.

    Cancelling the awaiting task abandons a running worker thread; the thread
    finishes on its own and its return value is discarded.
    """
    if is_async_callable(fn):
        return await fn(*args, **kwargs)

    result = await anyio.to_thread.run_sync(
        functools.partial(fn, *args, **kwargs), abandon_on_cancel=True
    )
    if inspect.isawaitable(result):
        return await result
    return result


__all__ = ["accepts_positional", "call_maybe_async", "is_async_callable", "positional_arity"]

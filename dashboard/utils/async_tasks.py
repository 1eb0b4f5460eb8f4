"""Async helpers.

Gateway calls are blocking `requests` calls; the dashboard runs on a single
asyncio loop. `run_async` keeps the loop responsive by pushing plain
callables onto a worker thread while awaiting coroutine functions directly.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable


async def run_async(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    if inspect.iscoroutinefunction(fn):
        return await fn(*args, **kwargs)
    result = await asyncio.to_thread(fn, *args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result


def schedule(coro_fn: Callable[[], Any]) -> asyncio.Task | None:
    """Start ``coro_fn()`` on the running loop, or do nothing without one."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return None
    return loop.create_task(coro_fn())

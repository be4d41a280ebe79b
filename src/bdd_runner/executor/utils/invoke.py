import asyncio
import inspect
from typing import Any, Callable


async def invoke(function: Callable, *args) -> Any:
    """Await coroutine functions; run plain callables in a worker thread"""
    if inspect.iscoroutinefunction(function):
        return await function(*args)

    result = await asyncio.to_thread(function, *args)
    if inspect.isawaitable(result):
        return await result
    return result

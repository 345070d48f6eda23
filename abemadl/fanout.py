"""
fanout — Run one coroutine per item, all at once or through a semaphore.
"""
from __future__ import annotations
import asyncio
from typing import Awaitable, Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def gather_limited(
    fn: Callable[[T], Awaitable[R]],
    items: Iterable[T],
    limit: int | None = None,
) -> list[R]:
    """
    Await fn(item) for every item; results keep input order.

    limit: max coroutines in flight (None/0 = unbounded).
    The first exception propagates and the remaining tasks are cancelled.
    """
    items = list(items)
    if not limit or limit <= 0:
        run = fn
    else:
        sem = asyncio.Semaphore(limit)

        async def run(item):
            async with sem:
                return await fn(item)

    tasks = [asyncio.ensure_future(run(it)) for it in items]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

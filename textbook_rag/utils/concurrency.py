"""Bounded-concurrency helpers for collaborator calls.

Embedding requests are the only fan-out in the pipeline: a document with a
few thousand chunks becomes dozens of embedding batches, and the provider
rate-limits bursts.  :func:`throttled_gather` runs those batches
concurrently while keeping at most ``limit`` requests in flight.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")


def make_semaphore(limit: int) -> asyncio.Semaphore:
    """Return a semaphore with at least one slot.

    ``max(1, ...)`` keeps a zero or negative setting from deadlocking
    every waiter.
    """
    return asyncio.Semaphore(max(1, limit))


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` slots at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Semaphore bounding how many awaitables run at once.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)

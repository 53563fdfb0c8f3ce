"""Structured fan-out helpers."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Iterable
from typing import Any, TypeVar

T = TypeVar("T")


async def run_all(coros: Iterable[Coroutine[Any, Any, T]]) -> list[T]:
    """Run *coros* concurrently and return their results in order.

    If any of them fails, the others are cancelled and awaited before the
    first failure is re-raised, unwrapped from the task group's
    ``ExceptionGroup``.  No task outlives the call.
    """
    try:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(coro) for coro in coros]
    except BaseExceptionGroup as group:
        exc: BaseException = group
        while isinstance(exc, BaseExceptionGroup):
            exc = exc.exceptions[0]
        raise exc from exc.__cause__
    return [task.result() for task in tasks]

"""
Fire-and-forget helpers for best-effort side effects.

Tasks are tracked so they are not garbage collected mid-flight and can be
awaited on shutdown.
"""

import asyncio
import logging
from typing import Coroutine, Set

logger = logging.getLogger(__name__)

_background_tasks: Set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning(f"Background task {task.get_name()} failed: {exc}")


def fire_and_forget(coro: Coroutine, name: str = "background") -> asyncio.Task:
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task


async def drain_background_tasks() -> None:
    """Wait for every pending background task"""
    while _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)

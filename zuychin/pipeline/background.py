"""Detached background work whose failures only reach the logs.

Used for side effects that must not hold up a reply, e.g. storing a
memory after the dedup guard approved it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Fire-and-forget task group.

    Holds strong references to running tasks so they are not garbage
    collected mid-flight. Exceptions are logged and passed to *on_error*
    (if given); they never propagate to whoever spawned the task.
    """

    def __init__(self, on_error: Callable[[str, BaseException], None] | None = None) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._on_error = on_error

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str = "background") -> asyncio.Task:
        """Schedule *coro* and return immediately."""
        task = asyncio.create_task(self._guard(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            logger.info("Background task %s cancelled", name)
            raise
        except Exception as exc:
            logger.exception("Background task %s failed", name)
            if self._on_error is not None:
                try:
                    self._on_error(name, exc)
                except Exception:
                    logger.exception("Background error handler failed for %s", name)

    async def drain(self) -> None:
        """Wait for every task spawned so far (used on shutdown and in tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


# Shared task group for pipeline side effects.
background = BackgroundTasks()

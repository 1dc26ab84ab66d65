"""Per-key in-flight registry. Coalesces concurrent populations of one key."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InFlightRegistry:
    """Maps a cache key to the task currently populating it.

    The first caller for a key starts the task; later callers await the
    same task and get the same result or exception. Tasks are shielded, so
    a caller that goes away does not cancel the work for everyone else.
    Unrelated keys never wait on each other.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is None:
            # No await between lookup and registration
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda t, k=key: self._discard(k, t))
        else:
            logger.debug("Joining in-flight population for %s", key[:12])
        return await asyncio.shield(task)

    def owns(self, key: str) -> bool:
        """True when called from the task currently registered for ``key``."""
        try:
            current = asyncio.current_task()
        except RuntimeError:  # no running loop
            return False
        return current is not None and self._tasks.get(key) is current

    def forget(self, key: str) -> bool:
        """Detach the task for ``key``; it finishes but may no longer write."""
        return self._tasks.pop(key, None) is not None

    def forget_all(self) -> int:
        count = len(self._tasks)
        self._tasks.clear()
        return count

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def _discard(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Population for %s failed: %s", key[:12], task.exception())

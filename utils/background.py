"""Fire-and-forget coroutines that stay referenced until they finish."""

import asyncio
import logging
from typing import Coroutine

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """
    Holds strong references to scheduled tasks.

    The event loop only keeps weak references, so an unreferenced task can be
    garbage collected mid-flight. Tasks remove themselves when done.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        """Schedule coro on the running loop without awaiting it."""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for everything currently scheduled. Used at shutdown and in tests."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

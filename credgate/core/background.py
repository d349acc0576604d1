"""Fire-and-forget dispatch for work that must not delay a response."""

import asyncio
from collections.abc import Awaitable

from credgate.utils.logger import get_logger

logger = get_logger(__name__)


class BackgroundDispatcher:
    """Schedules coroutines on the running loop and keeps them referenced.

    Failures are logged and dropped. ``drain`` waits for everything that is
    currently pending, which tests and shutdown use.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def dispatch(self, coro: Awaitable, *, name: str) -> asyncio.Task:
        task = asyncio.ensure_future(self._guard(coro, name))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Awaitable, name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("background_task_failed", task=name, error=str(e))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

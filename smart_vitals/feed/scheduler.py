"""
Deferred background work with a cancelable handle.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from smart_vitals.config.logging import get_logger

logger = get_logger(__name__)


class DeferredTask:
    """Runs a coroutine function once after a delay unless cancelled first."""

    def __init__(self, delay: float, callback: Callable[[], Awaitable[Any]], name: str | None = None):
        self.delay = delay
        self.name = name or getattr(callback, "__name__", "deferred")
        self._callback = callback
        self._task: asyncio.Task | None = None

    @classmethod
    def schedule(
        cls, delay: float, callback: Callable[[], Awaitable[Any]], name: str | None = None
    ) -> "DeferredTask":
        """Create a task and start its timer on the running loop."""
        deferred = cls(delay, callback, name)
        deferred._task = asyncio.get_running_loop().create_task(deferred._run(), name=deferred.name)
        return deferred

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        try:
            await self._callback()
        except Exception as e:
            logger.error("Deferred task failed", task=self.name, error=str(e))

    def cancel(self) -> bool:
        """Cancel the task if it has not finished. Returns True if cancelled."""
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task is not None and self._task.cancelled()

    async def wait(self) -> None:
        """Wait until the task finishes or is cancelled."""
        if self._task is not None:
            await asyncio.wait({self._task})

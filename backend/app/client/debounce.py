"""Single-slot debouncer on top of asyncio tasks."""

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Runs only the most recently scheduled call, ``delay`` seconds after the last schedule().

    Scheduling cancels the pending call. A call that has already started is
    left to finish.
    """

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._task: asyncio.Task | None = None
        self._pending: Callable[[], Awaitable[None]] | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def schedule(self, func: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self._pending = func
        self._task = asyncio.create_task(self._run_later(func))

    async def _run_later(self, func: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(self.delay)
        self._pending = None
        try:
            await func()
        except Exception:
            logger.exception("Debounced call failed")

    def cancel(self) -> None:
        if self._pending is not None and self._task is not None:
            self._task.cancel()
        self._task = None
        self._pending = None

    async def flush(self) -> None:
        """Run the pending call now instead of waiting for the delay."""
        func = self._pending
        self.cancel()
        if func is not None:
            await func()

    async def wait(self) -> None:
        """Wait for the scheduled call (if any) to finish."""
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

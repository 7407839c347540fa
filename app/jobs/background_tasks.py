"""
Tracked set of fire-and-forget tasks (delivery verifications).

Tasks outlive the bulk job that spawned them, so the application owns them and
joins or cancels whatever is still pending at shutdown.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class BackgroundTaskSet:
    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Background task failed",
                task=task.get_name(),
                error=str(error),
                error_type=type(error).__name__,
            )

    async def join(self) -> None:
        """Wait for every task currently tracked. Mostly for tests."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float) -> None:
        """Give pending tasks `timeout` seconds, then cancel the rest."""
        if not self._tasks:
            return

        pending = list(self._tasks)
        done, still_pending = await asyncio.wait(pending, timeout=timeout)

        if still_pending:
            logger.warning(
                "Abandoning background tasks at shutdown",
                pending=len(still_pending),
                finished=len(done),
                tasks=[task.get_name() for task in still_pending],
            )
            for task in still_pending:
                task.cancel()
            await asyncio.gather(*still_pending, return_exceptions=True)

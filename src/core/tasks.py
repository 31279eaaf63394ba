"""Tracked fire-and-forget tasks.

Bootstrap lookups and auto-replies must never block event ingestion, but
their completion and failures should still be observable (tests await
drain(); operators read the logs).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional

LOGGER = logging.getLogger(__name__)


class BackgroundTasks:
    """Spawn coroutines as tasks, keep references and log failures."""

    def __init__(self) -> None:
        self._pending: set[asyncio.Task] = set()
        self.completed = 0
        self.failures: list[tuple[str, BaseException]] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def spawn(self, coro: Awaitable[Any], name: Optional[str] = None) -> asyncio.Task:
        """Schedule coro on the running loop and track it until done."""

        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            self.completed += 1
            return
        self.failures.append((task.get_name(), error))
        LOGGER.error(
            "Background task %s failed",
            task.get_name(),
            exc_info=(type(error), error, error.__traceback__),
        )

    async def drain(self) -> None:
        """Wait until every spawned task (including ones spawned meanwhile) is done."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def cancel_all(self) -> None:
        for task in list(self._pending):
            task.cancel()
        await asyncio.gather(*list(self._pending), return_exceptions=True)

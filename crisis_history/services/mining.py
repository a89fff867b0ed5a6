"""Background pattern re-mining with at-most-one-in-flight per user.

A Record schedules a re-mine for its user.  If a re-mine is already
running for that user, the request is coalesced: the running task loops
once more when it finishes instead of a second task being queued.
Readers call wait_for() before reading patterns, so they never observe
a pattern set older than the last completed write.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class PatternMiningScheduler:
    """Per-user coalescing task runner.

    Args:
        mine: Coroutine function that re-mines and publishes one user's patterns.
    """

    def __init__(self, mine: Callable[[str], Awaitable[object]]) -> None:
        self._mine = mine
        self._tasks: dict[str, asyncio.Task] = {}
        self._pending: set[str] = set()
        self._closed = False

    def schedule(self, user_id: str) -> None:
        """Request a re-mine for *user_id*.  Never blocks.

        Once drained, requests are logged and dropped so a write that
        arrives during shutdown still completes.
        """
        if self._closed:
            logger.warning("Pattern mining is shut down; skipping re-mine for user %s", user_id)
            return
        if user_id in self._tasks:
            self._pending.add(user_id)
            logger.debug("Coalesced re-mine request for user %s", user_id)
            return
        self._tasks[user_id] = asyncio.create_task(
            self._run(user_id), name=f"remine-{user_id}",
        )

    async def wait_for(self, user_id: str) -> None:
        """Block until any in-flight re-mine for *user_id* has published."""
        task = self._tasks.get(user_id)
        if task is not None:
            await asyncio.shield(task)

    async def wait_all(self) -> None:
        """Wait until no re-mine is in flight for any user."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def drain(self) -> None:
        """Stop accepting work and wait for every in-flight re-mine to publish."""
        self._closed = True
        await self.wait_all()
        logger.info("Pattern mining drained")

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def _run(self, user_id: str) -> None:
        try:
            while True:
                self._pending.discard(user_id)
                try:
                    await self._mine(user_id)
                except Exception:
                    # Patterns stay at their last published set; the next
                    # Record schedules another attempt.
                    logger.exception("Pattern mining failed for user %s", user_id)
                if user_id not in self._pending:
                    break
        finally:
            self._tasks.pop(user_id, None)

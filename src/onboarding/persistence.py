"""
Onboarding - Background server sync.

Step saves are fire-and-forget: durable storage has already been written
by the time a save is queued, so a failed server sync only loses the
server copy. Saves run one at a time, in submission order, so the last
transition is the one the server ends up with.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from sidehive.core.errors import OperationCancelledError

logger = logging.getLogger(__name__)

SaveJob = Callable[[], Awaitable[object]]


class BackgroundSaver:
    """Single worker task draining a queue of save jobs."""

    def __init__(self):
        self._queue: asyncio.Queue[tuple[str, SaveJob]] | None = None
        self._worker: asyncio.Task | None = None
        self.failures = 0
        self.skipped = 0

    def submit(self, label: str, job: SaveJob) -> bool:
        """
        Queue `job` on the running event loop.

        Without a running loop (a synchronous caller) the job is skipped and
        counted; durable storage already holds the state, so the next save
        made from inside the loop brings the server up to date.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self.skipped += 1
            logger.warning(f"No running event loop; skipping background save: {label}")
            return False

        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(self._queue))
        self._queue.put_nowait((label, job))
        return True

    async def _run(self, queue: asyncio.Queue) -> None:
        while True:
            label, job = await queue.get()
            try:
                await job()
            except OperationCancelledError:
                logger.info(f"Background save cancelled: {label}")
            except Exception:
                self.failures += 1
                logger.exception(f"Background save failed: {label}")
            finally:
                queue.task_done()

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def drain(self) -> None:
        """Wait until every queued save has finished (tests, shutdown)."""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            await asyncio.gather(self._worker, return_exceptions=True)
            self._worker = None

"""Background click counting.

Redirects hand visited codes to a bounded in-process queue and return
immediately. A small pool of worker tasks drains the queue and applies the
store's atomic increment, each in its own transaction. When the queue is full
the click is dropped and counted, so load shows up in the stats instead of as
unbounded task growth.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable, List, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from hashurl.repositories.base import RepositoryError
from hashurl.repositories.mapping_repository import MappingRepository

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class ClickRecorderStats(BaseModel):
    running: bool
    queued: int
    processed: int
    failed: int
    dropped: int


class ClickRecorder:
    """
    Bounded queue of pending click increments consumed by worker tasks.

    Args:
        repository: Store providing ``increment_click_count``
        session_factory: Returns an async context manager yielding a session
            that commits on exit (``SessionManager.transaction_context``)
        maxsize: Queue capacity; further clicks are dropped
        workers: Number of consumer tasks
    """

    def __init__(
        self,
        repository: MappingRepository,
        session_factory: SessionFactory,
        maxsize: int = 10000,
        workers: int = 1,
    ):
        self.repository = repository
        self.session_factory = session_factory
        self.maxsize = maxsize
        self.worker_count = max(1, workers)
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self.processed = 0
        self.failed = 0
        self.dropped = 0

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._workers)

    def start(self) -> None:
        """Create the queue and spawn the workers on the running loop."""
        if self.is_running:
            logger.warning("Click recorder already running")
            return
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"click-worker-{i}")
            for i in range(self.worker_count)
        ]
        logger.info(f"Click recorder started with {self.worker_count} worker(s), capacity {self.maxsize}")

    def record(self, code: str) -> bool:
        """
        Enqueue a visit without waiting.

        Returns:
            bool: False if the click was dropped (recorder stopped or queue full)
        """
        if self._queue is None or not self.is_running:
            self.dropped += 1
            logger.warning(f"Click recorder not running, dropping click for '{code}'")
            return False
        try:
            self._queue.put_nowait(code)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Click queue full ({self.maxsize}), dropping click for '{code}'")
            return False

    async def _worker(self, index: int) -> None:
        while True:
            code = await self._queue.get()
            try:
                await self._increment(code)
            finally:
                self._queue.task_done()

    async def _increment(self, code: str) -> None:
        try:
            async with self.session_factory() as db:
                count = await self.repository.increment_click_count(db, code)
            if count is None:
                logger.warning(f"Click for unknown code '{code}' ignored")
            self.processed += 1
        except (RepositoryError, OSError) as e:
            self.failed += 1
            logger.error(f"Failed to increment click count for '{code}': {e}")
        except Exception:
            self.failed += 1
            logger.exception(f"Unexpected error incrementing click count for '{code}'")

    async def join(self) -> None:
        """Wait until every queued click has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, drain: bool = True, timeout: float = 5.0) -> None:
        """
        Stop the workers, optionally letting them finish queued clicks first.

        Args:
            drain: Process what is already queued before stopping
            timeout: Upper bound in seconds for draining
        """
        if drain and self.is_running:
            try:
                await asyncio.wait_for(self.join(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Click queue not drained within {timeout}s, {self._queue.qsize()} click(s) lost")

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info(
            f"Click recorder stopped: processed={self.processed}, failed={self.failed}, dropped={self.dropped}"
        )

    def stats(self) -> ClickRecorderStats:
        return ClickRecorderStats(
            running=self.is_running,
            queued=self._queue.qsize() if self._queue is not None else 0,
            processed=self.processed,
            failed=self.failed,
            dropped=self.dropped,
        )

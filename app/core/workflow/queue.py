"""
Background worker pool for video processing.

Upload requests hand a video id to ``ProcessingQueue.enqueue`` and return
immediately; a fixed number of worker tasks drain the queue. The queue is
bounded, so a flood of uploads is refused instead of piling up work.

Jobs are held in memory only. Anything still queued or running when the
process exits stays in ``Processing`` and is not resumed on restart.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from app.config import QUEUE_MAX_SIZE, SHUTDOWN_GRACE_SECONDS, WORKER_CONCURRENCY

logger = logging.getLogger(__name__)

JobHandler = Callable[[str], Awaitable[None]]


class QueueFullError(Exception):
    """Raised when the processing queue cannot accept more work."""
    pass


class ProcessingQueue:
    """Bounded asyncio queue drained by a pool of worker tasks."""

    def __init__(
        self,
        handler: JobHandler,
        concurrency: int = WORKER_CONCURRENCY,
        max_size: int = QUEUE_MAX_SIZE,
        shutdown_grace: float = SHUTDOWN_GRACE_SECONDS,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.handler = handler
        self.concurrency = concurrency
        self.max_size = max_size
        self.shutdown_grace = shutdown_grace
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self._accepting = False

    @property
    def running(self) -> bool:
        return self._accepting

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue else 0

    async def start(self) -> None:
        """Spawn the worker tasks on the running event loop."""
        if self._accepting:
            return
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_size)
        self._queue = queue
        self._workers = [
            asyncio.create_task(self._worker(n, queue), name=f"video-worker-{n}")
            for n in range(1, self.concurrency + 1)
        ]
        self._accepting = True
        logger.info(f"Started {self.concurrency} processing workers")

    def enqueue(self, video_id: str) -> None:
        """
        Schedule a video for processing.

        Raises:
            QueueFullError: If the queue is stopped or at capacity
        """
        if not self._accepting or self._queue is None:
            raise QueueFullError("Processing queue is not running")
        try:
            self._queue.put_nowait(video_id)
        except asyncio.QueueFull as e:
            raise QueueFullError("Processing queue is full") from e
        logger.debug(f"Queued video {video_id} ({self._queue.qsize()} pending)")

    async def join(self) -> None:
        """Wait until every queued video has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """
        Stop accepting work, give queued jobs ``shutdown_grace`` seconds to
        finish, then cancel the workers.
        """
        if self._queue is None:
            return
        self._accepting = False
        try:
            await asyncio.wait_for(self._queue.join(), timeout=self.shutdown_grace)
        except asyncio.TimeoutError:
            logger.warning(
                f"Shutting down with {self._queue.qsize()} queued videos unprocessed"
            )
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        logger.info("Processing workers stopped")

    async def _worker(self, number: int, queue: asyncio.Queue) -> None:
        while True:
            video_id = await queue.get()
            try:
                logger.debug(f"Worker {number} picked up video {video_id}")
                await self.handler(video_id)
            except Exception as e:
                # Keep the worker alive for the next job
                logger.error(f"Worker {number} failed on video {video_id}: {e}", exc_info=True)
            finally:
                queue.task_done()

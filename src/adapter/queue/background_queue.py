"""In-process asyncio implementation of TaskQueuePort.

Manages deferred work inside the running event loop:
- Queue: FIFO asyncio.Queue of (work, cancel_event) pairs
- Workers: a fixed number of consumer tasks started with start()
- Shutdown: stop() optionally drains pending work before cancelling workers

A failing work item is logged and does not stop its worker.
"""

import asyncio
import contextlib
import logging

from port.task_queue import WorkItem

logger = logging.getLogger(__name__)


class BackgroundTaskQueue:
    def __init__(self, workers: int = 1, max_size: int = 0):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._worker_count = workers
        self._queue: asyncio.Queue[tuple[WorkItem, asyncio.Event | None]] = asyncio.Queue(maxsize=max_size)
        self._workers: list[asyncio.Task] = []
        self._closed = False
        self.processed = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return bool(self._workers)

    # ── TaskQueuePort implementation ─────────────────────────

    def submit(self, work: WorkItem, cancel_event: asyncio.Event | None = None) -> None:
        if self._closed:
            raise RuntimeError("Background queue is stopped")
        try:
            self._queue.put_nowait((work, cancel_event))
        except asyncio.QueueFull:
            logger.error("Background queue full, rejecting work", extra={"pending": self.pending})
            raise
        logger.debug("Work queued", extra={"pending": self.pending})

    # ── lifecycle ────────────────────────────────────────────

    async def start(self) -> None:
        if self._workers:
            return
        self._closed = False
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"background-queue-{i}")
            for i in range(self._worker_count)
        ]
        logger.info("Background queue started", extra={"workers": self._worker_count})

    async def stop(self, drain: bool = True) -> None:
        self._closed = True
        if drain and self._workers:
            await self._queue.join()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Background queue stopped", extra={"pending": self.pending, "processed": self.processed})

    # ── workers ──────────────────────────────────────────────

    async def _worker(self, index: int) -> None:
        while True:
            work, cancel_event = await self._queue.get()
            try:
                if cancel_event is not None and cancel_event.is_set():
                    logger.info("Skipping cancelled work", extra={"worker": index})
                    continue
                await self._run(work, cancel_event)
                self.processed += 1
            except Exception as e:
                self.failed += 1
                logger.error("Background work failed", extra={"worker": index, "error": str(e)}, exc_info=True)
            finally:
                self._queue.task_done()

    async def _run(self, work: WorkItem, cancel_event: asyncio.Event | None) -> None:
        if cancel_event is None:
            await work()
            return

        work_task = asyncio.ensure_future(work())
        cancel_waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({work_task, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED)
            if work_task in done:
                work_task.result()
                return
            work_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await work_task
            logger.info("Work cancelled while running")
        finally:
            for task in (work_task, cancel_waiter):
                if not task.done():
                    task.cancel()

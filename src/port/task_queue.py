"""Port definition for the deferred task queue."""

import asyncio
from typing import Awaitable, Callable, Protocol

WorkItem = Callable[[], Awaitable[None]]


class TaskQueuePort(Protocol):
    def submit(self, work: WorkItem, cancel_event: asyncio.Event | None = None) -> None:
        """Accept ``work`` for out-of-band execution without waiting for it.

        If ``cancel_event`` is set before the work starts it is skipped;
        if it is set while the work runs, the work is cancelled.
        """
        ...

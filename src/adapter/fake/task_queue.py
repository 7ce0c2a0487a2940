"""In-memory implementation of TaskQueuePort for testing.

Records submissions instead of running them; ``run_all`` executes them on
demand so tests can observe the state before and after deferred work.
"""

import asyncio

from port.task_queue import WorkItem


class FakeTaskQueue:
    def __init__(self):
        self.submitted: list[tuple[WorkItem, asyncio.Event | None]] = []
        self.completed = 0

    def submit(self, work: WorkItem, cancel_event: asyncio.Event | None = None) -> None:
        self.submitted.append((work, cancel_event))

    async def run_all(self) -> None:
        while self.submitted:
            work, cancel_event = self.submitted.pop(0)
            if cancel_event is not None and cancel_event.is_set():
                continue
            await work()
            self.completed += 1

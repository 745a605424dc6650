"""
Background Task Queue

In-process FIFO for one-off work produced by request handlers, e.g. "send
this card now". A single BackgroundQueueWorker consumes it, one item at a
time, until the host shuts down.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import uuid4

from goal_tracker.telemetry import Events, track_event

logger = logging.getLogger(__name__)

WorkHandler = Callable[[], Awaitable[Any]]

# Seconds to wait before retrying a failed dequeue
DEQUEUE_RETRY_DELAY = 1.0


@dataclass
class WorkItem:
    """A unit of queued work"""
    handler: WorkHandler
    name: str = "work-item"
    item_id: str = field(default_factory=lambda: str(uuid4())[:8])
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class BackgroundTaskQueue:
    """Unbounded FIFO of work items"""

    def __init__(self):
        self._queue: "asyncio.Queue[WorkItem]" = asyncio.Queue()

    def enqueue(self, handler: WorkHandler, name: str = "work-item") -> WorkItem:
        if handler is None:
            raise ValueError("handler is required")

        item = WorkItem(handler=handler, name=name)
        self._queue.put_nowait(item)
        logger.debug(f"[{item.item_id}] Enqueued {name}")
        return item

    async def dequeue(self, stop_event: asyncio.Event) -> Optional[WorkItem]:
        """
        Wait for the next item.

        Returns:
            The next item, or None once stop_event is set
        """
        if stop_event.is_set():
            return None

        get_task = asyncio.ensure_future(self._queue.get())
        stop_task = asyncio.ensure_future(stop_event.wait())
        try:
            done, _ = await asyncio.wait({get_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_task.cancel()
            if not get_task.done():
                get_task.cancel()

        if get_task in done and not get_task.cancelled():
            return get_task.result()
        return None

    def qsize(self) -> int:
        return self._queue.qsize()


class BackgroundQueueWorker:
    """Single consumer for a BackgroundTaskQueue"""

    def __init__(self, queue: BackgroundTaskQueue, name: str = "background-queue"):
        self.queue = queue
        self.name = name
        self.processed = 0
        self.failed = 0
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self):
        logger.info(f"{self.name} worker started")
        while True:
            try:
                item = await self.queue.dequeue(self._stop_event)
            except Exception as e:
                logger.error(f"{self.name} failed to dequeue: {e}", exc_info=True)
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=DEQUEUE_RETRY_DELAY)
                except asyncio.TimeoutError:
                    pass
                if self._stop_event.is_set():
                    break
                continue

            if item is None:
                break

            try:
                await item.handler()
                self.processed += 1
                logger.info(f"[{item.item_id}] {item.name} completed")
            except Exception as e:
                self.failed += 1
                logger.error(f"[{item.item_id}] {item.name} failed: {e}", exc_info=True)
                track_event(Events.WORK_ITEM_FAILED, {"worker": self.name, "item": item.name})

        logger.info(f"{self.name} worker stopped")

    def start(self) -> asyncio.Task:
        if self.is_running:
            return self._task
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name=self.name)
        return self._task

    async def stop(self, timeout: float = 30.0):
        """Stop taking new items; an item being processed gets `timeout` seconds to finish."""
        self._stop_event.set()
        if not self._task:
            return
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.name} did not stop within {timeout}s and was cancelled")
        finally:
            self._task = None

    def status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "running": self.is_running,
            "pending": self.queue.qsize(),
            "processed": self.processed,
            "failed": self.failed,
        }

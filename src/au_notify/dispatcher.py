"""Queue-backed notification dispatcher.

The engine calls notify_many() after its transaction committed and its item
lock was released. Messages go onto an asyncio.Queue; a single background
worker drains it into a sink. Nothing here can fail or slow a bid:
a full queue drops the message, a sink error is logged and the worker moves on.
"""
import asyncio
import logging

from src.au_notify.events import Notification, NotificationSink

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, sink: NotificationSink, maxsize: int = 10000) -> None:
        self._sink = sink
        self._queue: asyncio.Queue[Notification] = asyncio.Queue(maxsize=maxsize)
        self._worker: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def notify(self, notification: Notification) -> None:
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            logger.warning(
                "Notification queue full, dropping %s for %s",
                notification.event.value,
                notification.recipient_id,
            )

    def notify_many(self, notifications: list[Notification]) -> None:
        for n in notifications:
            self.notify(n)

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")

    async def stop(self, drain_timeout: float = 5.0) -> None:
        """Give queued messages a bounded chance to go out, then stop the worker."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
        except TimeoutError:
            logger.warning("Dropping %d undelivered notifications on shutdown", self.pending)
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def drain(self) -> None:
        """Deliver everything currently queued on the caller's task."""
        while not self._queue.empty():
            await self._deliver(self._queue.get_nowait())

    async def _run(self) -> None:
        while True:
            notification = await self._queue.get()
            await self._deliver(notification)

    async def _deliver(self, notification: Notification) -> None:
        try:
            await self._sink.send(notification)
        except Exception:
            logger.exception(
                "Notification %s to %s failed",
                notification.event.value,
                notification.recipient_id,
            )
        finally:
            self._queue.task_done()

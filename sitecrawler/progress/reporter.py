"""
Fire-and-forget progress notifications.

Workers hand finished results to report(), which never blocks: events go into a
bounded queue drained by a background task that calls the sink. A full queue
drops the event, and a failing or slow sink never affects the crawl.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Optional, Union

from ..core.protocols import ProgressSink
from ..core.types import CrawlResult, ProgressEvent

logger = logging.getLogger(__name__)

SinkLike = Union[ProgressSink, Callable[[ProgressEvent], Any]]


class ProgressReporter:
    """
    Delivers ProgressEvents to an optional sink from a background task.
    """

    def __init__(self, sink: Optional[SinkLike] = None, max_queue_size: int = 1000, shutdown_grace_seconds: float = 2.0):
        """
        Initialize the reporter.

        Args:
            sink: Object with on_page_completed(event), or a plain callable; None disables reporting
            max_queue_size: Maximum number of undelivered events
            shutdown_grace_seconds: Time shutdown() waits for the sink to catch up
        """
        self._callback = self._resolve_callback(sink)
        self._is_async = self._callback is not None and inspect.iscoroutinefunction(self._callback)
        self.max_queue_size = max_queue_size
        self.shutdown_grace_seconds = shutdown_grace_seconds

        self._queue: "asyncio.Queue[ProgressEvent]" = asyncio.Queue(maxsize=max_queue_size)
        self._drain_task: Optional["asyncio.Task[None]"] = None

        self.stats = {
            "events_reported": 0,
            "events_delivered": 0,
            "events_dropped": 0,
            "sink_errors": 0,
            "events_abandoned": 0,
        }

    @staticmethod
    def _resolve_callback(sink: Optional[SinkLike]) -> Optional[Callable[[ProgressEvent], Any]]:
        if sink is None:
            return None
        callback = getattr(sink, "on_page_completed", None)
        if callback is not None:
            return callback
        if callable(sink):
            return sink
        raise TypeError(f"Progress sink must define on_page_completed or be callable, got {type(sink).__name__}")

    @property
    def enabled(self) -> bool:
        return self._callback is not None

    async def start(self) -> None:
        """Start the background drain task"""
        if self._callback is not None and self._drain_task is None:
            self._drain_task = asyncio.create_task(self._drain(), name="progress-reporter")

    def report(self, result: CrawlResult) -> None:
        """Queue a progress event for ``result`` without waiting"""
        if self._callback is None:
            return

        event = ProgressEvent(
            id=result.id,
            url=result.request_path,
            status_code=result.status_code,
            depth=result.depth,
            links_found=result.links_found,
        )
        self.stats["events_reported"] += 1

        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.stats["events_dropped"] += 1
            logger.debug(f"Progress queue full, dropped event for {event.url}")

    async def _drain(self) -> None:
        assert self._callback is not None
        loop = asyncio.get_running_loop()
        while True:
            event = await self._queue.get()
            try:
                if self._is_async:
                    await self._callback(event)
                else:
                    # Plain callables run in the default executor, off the event loop
                    outcome = await loop.run_in_executor(None, self._callback, event)
                    if inspect.isawaitable(outcome):
                        await outcome
                self.stats["events_delivered"] += 1
            except Exception as e:
                self.stats["sink_errors"] += 1
                logger.warning(f"Progress sink failed for {event.url}: {e}", extra={"task_id": event.id})
            finally:
                self._queue.task_done()

    async def shutdown(self) -> None:
        """
        Give the sink a grace period to receive queued events, then stop.

        Events still undelivered after the grace period are abandoned.
        """
        if self._drain_task is None:
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=self.shutdown_grace_seconds)
        except asyncio.TimeoutError:
            self.stats["events_abandoned"] = self._queue.qsize()
            logger.warning(
                f"Progress sink did not keep up; abandoning {self._queue.qsize()} pending events"
            )

        self._drain_task.cancel()
        try:
            await self._drain_task
        except asyncio.CancelledError:
            pass
        self._drain_task = None

    def get_stats(self) -> Dict[str, Any]:
        """Get reporter statistics"""
        stats: Dict[str, Any] = dict(self.stats)
        stats["queue_size"] = self._queue.qsize()
        stats["enabled"] = self.enabled
        return stats

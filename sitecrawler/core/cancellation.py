"""
Cooperative cancellation shared by every worker of a crawl run.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


class CrawlCancelledError(Exception):
    """Raised by CancelSignal.race when cancellation wins over the awaited operation"""

    pass


class CancelSignal:
    """
    One-shot cancellation flag backed by an asyncio.Event.

    Workers check it before each dequeue and race it against in-flight fetches.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for up to ``seconds``, waking early on cancellation.

        Returns:
            True if the sleep was interrupted by cancellation
        """
        if seconds <= 0:
            return self.is_cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def race(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless cancellation happens first.

        Raises:
            CrawlCancelledError: If the signal fires before the operation completes
        """
        if self.is_cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise CrawlCancelledError(self.reason or "crawl cancelled")

        operation = asyncio.ensure_future(awaitable)
        watcher = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({operation, watcher}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            operation.cancel()
            await asyncio.gather(operation, return_exceptions=True)
            raise
        finally:
            watcher.cancel()

        if operation.done():
            return operation.result()

        operation.cancel()
        try:
            await operation
        except (asyncio.CancelledError, Exception):
            pass
        raise CrawlCancelledError(self.reason or "crawl cancelled")

"""
Crawl frontier with an atomic dedup store.

Every candidate URL passes through try_accept, which normalizes it and decides
under one lock whether it is new, within depth, within the page budget and within
the domain policy. Accepted URLs become CrawlTasks served breadth-first.
"""

import asyncio
import logging
from collections import deque
from typing import Any, Deque, Dict, Optional, Set

from pydantic import BaseModel, Field

from ..core.types import AcceptDecision, CrawlOptions, CrawlTask, RejectReason
from ..utils.url import extract_domain, try_normalize_url

logger = logging.getLogger(__name__)


class FrontierStats(BaseModel):
    """Frontier operation statistics"""

    urls_accepted: int = 0
    urls_rejected: int = 0
    rejected_by_reason: Dict[str, int] = Field(default_factory=dict)
    tasks_dequeued: int = 0
    tasks_completed: int = 0


class Frontier:
    """
    FIFO queue of accepted crawl tasks plus the set of claimed URLs.

    dequeue() only reports exhaustion once the queue is empty and no dequeued task
    is still being processed, since an in-flight page may yield new links.
    """

    def __init__(self, options: CrawlOptions, seed_host: str):
        self.max_pages = options.max_pages
        self.max_depth = options.max_depth
        self.follow_external_links = options.follow_external_links
        self.seed_host = seed_host.lower()

        self._claimed: Set[str] = set()
        self._queue: Deque[CrawlTask] = deque()
        self._in_flight: Set[int] = set()
        self._next_id = 1
        self._closed = False
        self._condition = asyncio.Condition()

        self.stats = FrontierStats()

    @property
    def accepted_count(self) -> int:
        return self._next_id - 1

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    @property
    def closed(self) -> bool:
        return self._closed

    async def try_accept(self, url: str, depth: int, found_from: str = "") -> AcceptDecision:
        """
        Claim a URL and enqueue it as a new task if every admission rule passes.

        Args:
            url: Absolute URL (normalized here)
            depth: Depth the task would have
            found_from: URL of the page the link was found on

        Returns:
            AcceptDecision with the new task, or the reason it was rejected
        """
        normalized = try_normalize_url(url)

        async with self._condition:
            reason = self._check_admission(normalized, depth)
            if reason is not None:
                self._record_rejection(reason)
                if reason is not RejectReason.DUPLICATE:
                    logger.debug(f"Rejected {url}: {reason.value}", extra={"url": url, "depth": depth})
                return AcceptDecision(accepted=False, reason=reason)

            assert normalized is not None
            task = CrawlTask(id=self._next_id, url=normalized, depth=depth, found_from=found_from)
            self._next_id += 1
            self._claimed.add(normalized)
            self._queue.append(task)
            self.stats.urls_accepted += 1
            self._condition.notify()

        logger.debug(f"Accepted {normalized}", extra={"task_id": task.id, "url": normalized, "depth": depth})
        return AcceptDecision(accepted=True, task=task)

    def _check_admission(self, normalized: Optional[str], depth: int) -> Optional[RejectReason]:
        if self._closed:
            return RejectReason.CLOSED
        if normalized is None:
            return RejectReason.INVALID_URL
        if normalized in self._claimed:
            return RejectReason.DUPLICATE
        if depth > self.max_depth:
            return RejectReason.DEPTH_EXCEEDED
        if self.accepted_count >= self.max_pages:
            return RejectReason.BUDGET_EXHAUSTED
        if not self.follow_external_links and extract_domain(normalized) != self.seed_host:
            return RejectReason.EXTERNAL_DOMAIN
        return None

    def _record_rejection(self, reason: RejectReason) -> None:
        self.stats.urls_rejected += 1
        counts = self.stats.rejected_by_reason
        counts[reason.value] = counts.get(reason.value, 0) + 1

    async def dequeue(self) -> Optional[CrawlTask]:
        """
        Pop the next task in discovery order.

        Waits while the queue is empty but other tasks are in flight.

        Returns:
            The next CrawlTask, or None when the crawl is exhausted or the frontier is closed
        """
        async with self._condition:
            while True:
                if self._closed:
                    return None

                if self._queue:
                    task = self._queue.popleft()
                    self._in_flight.add(task.id)
                    self.stats.tasks_dequeued += 1
                    return task

                if not self._in_flight:
                    # Exhausted; let every other waiting worker observe it too
                    self._condition.notify_all()
                    return None

                await self._condition.wait()

    async def task_done(self, task: CrawlTask) -> None:
        """Mark a dequeued task as finished and wake waiting workers"""
        async with self._condition:
            if task.id in self._in_flight:
                self._in_flight.discard(task.id)
                self.stats.tasks_completed += 1
            self._condition.notify_all()

    async def close(self) -> None:
        """Stop accepting and serving tasks; wakes every waiting worker"""
        async with self._condition:
            if not self._closed:
                self._closed = True
                logger.debug(f"Frontier closed with {len(self._queue)} queued tasks")
            self._condition.notify_all()

    def get_stats(self) -> Dict[str, Any]:
        """Get frontier statistics"""
        stats = self.stats.model_dump()
        stats["queue_size"] = len(self._queue)
        stats["in_flight"] = len(self._in_flight)
        stats["claimed_urls"] = len(self._claimed)
        stats["remaining_budget"] = max(0, self.max_pages - self.accepted_count)
        stats["closed"] = self._closed
        return stats

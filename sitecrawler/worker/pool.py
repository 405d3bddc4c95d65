"""
Worker pool for a crawl run.

Runs a fixed number of worker coroutines that share one frontier. Each worker
repeatedly dequeues a task, waits out the politeness delay since its previous
request, processes the task under a time budget, offers the page's links back to
the frontier and hands the finished result on.

The politeness delay adapts to the site: after more than BACKOFF_TIMEOUT_THRESHOLD
consecutive timed-out pages it doubles (up to MAX_BACKOFF_DELAY), and each page
that completes without a timeout halves it back toward the configured delay.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel

from ..core.cancellation import CancelSignal
from ..core.types import CrawlErrorType, CrawlOptions, CrawlTask, PageOutcome
from ..discovery.frontier import Frontier
from .processor import PageProcessor

logger = logging.getLogger(__name__)

ResultHandler = Callable[[PageOutcome], Awaitable[None]]

BACKOFF_TIMEOUT_THRESHOLD = 3
MAX_BACKOFF_DELAY = 5.0  # seconds


class PoolStats(BaseModel):
    """Statistics for worker pool operations"""

    total_tasks_started: int = 0
    total_tasks_completed: int = 0
    total_tasks_failed: int = 0
    total_tasks_timed_out: int = 0
    total_tasks_cancelled: int = 0
    total_tasks_dropped: int = 0
    current_active_tasks: int = 0
    peak_concurrency: int = 0
    average_task_duration: float = 0.0

    # Adaptive politeness delay
    current_delay_ms: int = 0
    consecutive_timeouts: int = 0
    delay_increases: int = 0
    delay_decreases: int = 0


class WorkerPool:
    """
    Fixed-size pool of crawl workers.

    Workers stop when the frontier is exhausted or closed, or when the cancel
    signal fires. Cancellation also closes the frontier so idle workers wake up.
    """

    def __init__(
        self,
        frontier: Frontier,
        processor: PageProcessor,
        options: CrawlOptions,
        on_result: ResultHandler,
        cancel: Optional[CancelSignal] = None,
        crawl_delay: Optional[float] = None,
    ):
        """
        Initialize the pool.

        Args:
            frontier: Shared frontier the workers dequeue from
            processor: Page processor used for every task
            options: Crawl options (worker count, timeout, politeness delay)
            on_result: Coroutine called with each finalized PageOutcome
            cancel: Cancellation signal shared with the rest of the run
            crawl_delay: robots.txt Crawl-delay in seconds; raises the politeness delay floor
        """
        self.frontier = frontier
        self.processor = processor
        self.worker_count = options.max_concurrent_requests
        self.task_timeout = float(options.timeout_seconds)
        self.request_delay = max(options.request_delay_ms / 1000, crawl_delay or 0.0)
        self.current_delay = self.request_delay
        self.on_result = on_result
        self.cancel = cancel or CancelSignal()

        self.stats = PoolStats(current_delay_ms=int(self.current_delay * 1000))
        self._workers: List["asyncio.Task[None]"] = []

    async def run(self) -> None:
        """Run all workers until the crawl is exhausted or cancelled"""
        watcher = asyncio.create_task(self._close_on_cancel())
        self._workers = [
            asyncio.create_task(self._worker_loop(worker_id), name=f"crawl-worker-{worker_id}")
            for worker_id in range(self.worker_count)
        ]

        logger.debug(f"Started {self.worker_count} crawl workers")

        try:
            await asyncio.gather(*self._workers)
        except BaseException:
            for worker in self._workers:
                worker.cancel()
            await asyncio.gather(*self._workers, return_exceptions=True)
            raise
        finally:
            watcher.cancel()
            try:
                await watcher
            except asyncio.CancelledError:
                pass

        logger.debug("All crawl workers finished", extra=self.stats.model_dump())

    async def _close_on_cancel(self) -> None:
        await self.cancel.wait()
        logger.info(f"Cancellation requested: {self.cancel.reason or 'no reason given'}")
        await self.frontier.close()

    async def _worker_loop(self, worker_id: int) -> None:
        last_finished: Optional[float] = None

        while not self.cancel.is_cancelled:
            task = await self.frontier.dequeue()
            if task is None:
                break

            try:
                if self.cancel.is_cancelled:
                    self.stats.total_tasks_dropped += 1
                    break

                # Politeness delay between consecutive requests of this worker
                if last_finished is not None and self.current_delay > 0:
                    remaining = self.current_delay - (time.monotonic() - last_finished)
                    if remaining > 0 and await self.cancel.sleep(remaining):
                        self.stats.total_tasks_dropped += 1
                        break

                outcome = await self._run_task(task)
                try:
                    await self.on_result(outcome)
                except Exception as e:
                    logger.error(f"Error handling result for {task.url}: {e}", extra={"task_id": task.id})
            finally:
                await self.frontier.task_done(task)

            last_finished = time.monotonic()

        logger.debug(f"Worker {worker_id} exiting")

    async def _run_task(self, task: CrawlTask) -> PageOutcome:
        """Process one task within the time budget, then enqueue its links"""
        start_time = time.monotonic()
        self.stats.total_tasks_started += 1
        self.stats.current_active_tasks += 1
        self.stats.peak_concurrency = max(self.stats.peak_concurrency, self.stats.current_active_tasks)

        try:
            outcome = await asyncio.wait_for(self.processor.process(task, self.cancel), timeout=self.task_timeout)
        except asyncio.TimeoutError:
            self.stats.total_tasks_timed_out += 1
            logger.warning(
                f"Task timed out after {self.task_timeout:.1f}s",
                extra={"task_id": task.id, "url": task.url, "timeout": self.task_timeout},
            )
            error = self.processor.error_handler.timeout_error(task.url, task.depth, self.task_timeout)
            outcome = self.processor.failure_outcome(task, error, int(self.task_timeout * 1000))
        except Exception as e:
            logger.error(f"Task failed: {e}", extra={"task_id": task.id, "url": task.url, "error": str(e)})
            error = self.processor.error_handler.to_crawl_error(e, task.url, task.depth)
            outcome = self.processor.failure_outcome(task, error, int((time.monotonic() - start_time) * 1000))
        finally:
            self.stats.current_active_tasks -= 1

        if outcome.links and not self.cancel.is_cancelled:
            try:
                await self.processor.enqueue_links(outcome)
            except Exception as e:
                logger.error(f"Error enqueuing links from {task.url}: {e}", extra={"task_id": task.id})

        self._update_completion_stats(outcome, time.monotonic() - start_time)
        self._adapt_delay(outcome)
        return outcome

    def _adapt_delay(self, outcome: PageOutcome) -> None:
        """Back off after repeated timeouts, recover after a page that did not time out"""
        error_types = {error.error_type for error in outcome.result.errors}
        if CrawlErrorType.CANCELLED in error_types:
            return

        if CrawlErrorType.TIMEOUT in error_types or outcome.result.status_code == 408:
            self.stats.consecutive_timeouts += 1
            if self.stats.consecutive_timeouts > BACKOFF_TIMEOUT_THRESHOLD:
                increased = min(self.current_delay * 2, MAX_BACKOFF_DELAY)
                if increased > self.current_delay:
                    self.current_delay = increased
                    self.stats.delay_increases += 1
                    logger.warning(
                        f"Increased politeness delay to {increased * 1000:.0f}ms after "
                        f"{self.stats.consecutive_timeouts} consecutive timeouts"
                    )
        elif self.stats.consecutive_timeouts > 0:
            self.stats.consecutive_timeouts = 0
            if self.current_delay > self.request_delay:
                self.current_delay = max(self.current_delay / 2, self.request_delay)
                self.stats.delay_decreases += 1
                logger.info(f"Decreased politeness delay to {self.current_delay * 1000:.0f}ms")

        self.stats.current_delay_ms = int(round(self.current_delay * 1000))

    def _update_completion_stats(self, outcome: PageOutcome, duration: float) -> None:
        result = outcome.result
        if any(error.error_type is CrawlErrorType.CANCELLED for error in result.errors):
            self.stats.total_tasks_cancelled += 1
        elif result.errors:
            self.stats.total_tasks_failed += 1
        else:
            self.stats.total_tasks_completed += 1

        # Simple moving average
        finished = (
            self.stats.total_tasks_completed + self.stats.total_tasks_failed + self.stats.total_tasks_cancelled
        )
        if finished > 0:
            self.stats.average_task_duration = (
                self.stats.average_task_duration * (finished - 1) + duration
            ) / finished

    def get_stats(self) -> Dict[str, Any]:
        """Get worker pool statistics"""
        return {
            **self.stats.model_dump(),
            "configuration": {
                "worker_count": self.worker_count,
                "task_timeout": self.task_timeout,
                "request_delay": self.request_delay,
            },
        }

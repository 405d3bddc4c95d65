"""
Page processing: fetch one task, parse it, extract and enqueue its links.
"""

import logging
import time
from typing import List, Optional

from ..core.cancellation import CancelSignal, CrawlCancelledError
from ..core.exceptions import ParseError
from ..core.protocols import Fetcher, HtmlParser, RobotsGate
from ..core.types import (
    CandidateLink,
    CrawlError,
    CrawlErrorType,
    CrawlOptions,
    CrawlResult,
    CrawlTask,
    FetchResponse,
    LinkScope,
    PageOutcome,
    RejectReason,
    TaskState,
)
from ..discovery.frontier import Frontier
from ..discovery.link_extractor import extract_links
from ..http_client.parser import looks_like_html
from .error_handler import CrawlErrorHandler

logger = logging.getLogger(__name__)


class PageProcessor:
    """
    Processes a single CrawlTask into a finalized CrawlResult.

    Fetch, HTTP and parse failures are recorded as CrawlError values on the
    result; process() never raises for a page-level problem.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        parser: HtmlParser,
        frontier: Frontier,
        options: CrawlOptions,
        seed_host: str,
        robots: Optional[RobotsGate] = None,
        error_handler: Optional[CrawlErrorHandler] = None,
    ):
        self.fetcher = fetcher
        self.parser = parser
        self.frontier = frontier
        self.options = options
        self.seed_host = seed_host
        self.robots = robots
        self.error_handler = error_handler or CrawlErrorHandler()

        self.stats = {
            "pages_processed": 0,
            "pages_parsed": 0,
            "links_extracted": 0,
            "links_enqueued": 0,
            "external_links_skipped": 0,
            "robots_blocked": 0,
        }

    async def process(self, task: CrawlTask, cancel: Optional[CancelSignal] = None) -> PageOutcome:
        """
        Fetch and parse a task.

        Args:
            task: Task to process
            cancel: Cancellation signal raced against the fetch

        Returns:
            PageOutcome with the finalized result and its candidate links
        """
        self.stats["pages_processed"] += 1
        start_time = time.monotonic()

        logger.debug(f"{TaskState.FETCHING.value} {task.url}", extra={"task_id": task.id, "depth": task.depth})

        try:
            fetch = self.fetcher.fetch(task.url, self.options.user_agent, self.options.timeout_seconds, cancel)
            response = await cancel.race(fetch) if cancel is not None else await fetch
        except Exception as e:
            error = self.error_handler.to_crawl_error(e, task.url, task.depth)
            if not isinstance(e, CrawlCancelledError):
                logger.debug(f"Fetch failed for {task.url}: {e}", extra={"task_id": task.id})
            return self.failure_outcome(task, error, self._elapsed_ms(start_time))

        elapsed_ms = response.elapsed_ms or self._elapsed_ms(start_time)
        errors: List[CrawlError] = [self._reported_error(task, response, message) for message in response.errors]

        if response.status_code == 0:
            # Fetcher reported a failure without raising
            if not errors:
                errors.append(self._reported_error(task, response, "No response received"))
            return PageOutcome(result=self._build_result(task, response, elapsed_ms, errors, 0))

        if not 200 <= response.status_code < 300:
            errors.insert(0, self.error_handler.http_status_error(task.url, task.depth, response.status_code))
            return PageOutcome(result=self._build_result(task, response, elapsed_ms, errors, 0))

        links: List[CandidateLink] = []

        if looks_like_html(response.content_type, response.body):
            try:
                links = self._extract(task, response)
                self.stats["pages_parsed"] += 1
            except ParseError as e:
                errors.append(self.error_handler.to_crawl_error(e, task.url, task.depth, response.status_code))
            except Exception as e:
                parse_error = ParseError(f"Failed to parse HTML content: {str(e)}")
                errors.append(
                    self.error_handler.to_crawl_error(parse_error, task.url, task.depth, response.status_code)
                )

        self.stats["links_extracted"] += len(links)
        result = self._build_result(task, response, elapsed_ms, errors, len(links))
        return PageOutcome(result=result, links=links)

    def _extract(self, task: CrawlTask, response: FetchResponse) -> List[CandidateLink]:
        document = self.parser.parse(response.body or "")
        base_url = response.final_url or task.url
        return extract_links(document, base_url, self.seed_host)

    async def enqueue_links(self, outcome: PageOutcome) -> int:
        """
        Offer a page's candidate links to the frontier as tasks one level deeper.

        External links are dropped unless following them is enabled, and links
        disallowed by robots.txt are dropped silently.

        Returns:
            Number of links the frontier accepted
        """
        result = outcome.result
        next_depth = result.depth + 1
        accepted = 0

        for link in outcome.links:
            if link.scope is LinkScope.EXTERNAL and not self.options.follow_external_links:
                self.stats["external_links_skipped"] += 1
                continue

            if self.options.respect_robots_txt and self.robots is not None and not self.robots.is_allowed(link.url):
                self.stats["robots_blocked"] += 1
                continue

            decision = await self.frontier.try_accept(link.url, next_depth, result.request_path)
            if decision.accepted:
                accepted += 1
            elif decision.reason in (RejectReason.BUDGET_EXHAUSTED, RejectReason.CLOSED):
                break

        self.stats["links_enqueued"] += accepted
        return accepted

    def failure_outcome(self, task: CrawlTask, error: CrawlError, elapsed_ms: int = 0) -> PageOutcome:
        """Build the outcome of a page that produced no response"""
        result = CrawlResult(
            id=task.id,
            request_path=task.url,
            found_url=task.found_from,
            depth=task.depth,
            status_code=error.status_code or 0,
            errors=[error],
            elapsed_milliseconds=elapsed_ms,
            links_found=0,
        )
        return PageOutcome(result=result)

    def _reported_error(self, task: CrawlTask, response: FetchResponse, message: str) -> CrawlError:
        error_type = CrawlErrorType.CONNECTION_ERROR if response.status_code == 0 else CrawlErrorType.UNKNOWN
        return CrawlError(
            message=message,
            url=task.url,
            error_type=error_type,
            status_code=response.status_code or None,
            depth=task.depth,
        )

    def _build_result(
        self, task: CrawlTask, response: FetchResponse, elapsed_ms: int, errors: List[CrawlError], links_found: int
    ) -> CrawlResult:
        return CrawlResult(
            id=task.id,
            request_path=task.url,
            found_url=task.found_from,
            depth=task.depth,
            status_code=response.status_code,
            errors=errors,
            response_body=response.body,
            content_type=response.content_type,
            elapsed_milliseconds=elapsed_ms,
            links_found=links_found,
        )

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)

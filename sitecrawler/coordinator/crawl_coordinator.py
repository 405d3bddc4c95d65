"""
Crawl coordinator.

Validates a crawl request, wires the frontier, processor, worker pool, result
aggregator and progress reporter together for one run, and returns the ordered
results when the run completes or is cancelled.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from ..config.settings import CrawlerSettings
from ..config.validator import validate_crawl_request
from ..core.cancellation import CancelSignal
from ..core.exceptions import CrawlConfigurationError
from ..core.protocols import Fetcher, HtmlParser, RobotsGate
from ..core.types import CrawlOptions, CrawlResult, PageOutcome, RunState
from ..discovery.frontier import Frontier
from ..http_client.client import CrawlerHTTPClient
from ..http_client.parser import SoupHtmlParser
from ..http_client.robots import AllowAllRobots, RobotsChecker
from ..progress.reporter import ProgressReporter, SinkLike
from ..storage.results import CrawlReport, ResultAggregator
from ..utils.logging import CrawlerLoggerAdapter, get_crawler_logger
from ..utils.url import extract_domain, normalize_url
from ..worker.error_handler import CrawlErrorHandler
from ..worker.pool import WorkerPool
from ..worker.processor import PageProcessor

logger = logging.getLogger(__name__)

OptionsLike = Union[CrawlOptions, Mapping[str, Any], None]

# Pages between crawl_progress log lines
PROGRESS_LOG_INTERVAL = 10


def resolve_options(options: OptionsLike, settings: Optional[CrawlerSettings] = None) -> CrawlOptions:
    """
    Build CrawlOptions from an instance, a mapping of overrides, or the settings defaults.

    Raises:
        CrawlConfigurationError: If a mapping contains values of the wrong type
    """
    if isinstance(options, CrawlOptions):
        return options

    base = settings.to_crawl_options() if settings is not None else CrawlOptions()
    if options is None:
        return base

    try:
        return CrawlOptions(**{**base.model_dump(), **dict(options)})
    except ValidationError as e:
        errors = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise CrawlConfigurationError(errors) from e
    except TypeError as e:
        raise CrawlConfigurationError([str(e)]) from e


class CrawlCoordinator:
    """
    Runs crawls against pluggable fetch, parse and robots collaborators.

    Without explicit collaborators an aiohttp CrawlerHTTPClient, a BeautifulSoup
    parser and a urllib.robotparser-backed RobotsChecker are used. A coordinator
    runs one crawl at a time.
    """

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        parser: Optional[HtmlParser] = None,
        robots: Optional[RobotsGate] = None,
        settings: Optional[CrawlerSettings] = None,
    ):
        self.fetcher = fetcher
        self.parser = parser or SoupHtmlParser()
        self.robots = robots
        self.settings = settings

        self.state = RunState.IDLE
        self.last_report: Optional[CrawlReport] = None

    async def crawl(
        self,
        seed_url: str,
        options: OptionsLike = None,
        sink: Optional[SinkLike] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> List[CrawlResult]:
        """
        Crawl from ``seed_url`` and return per-page results in discovery order.

        Raises:
            CrawlConfigurationError: If the seed URL or options are invalid
        """
        report = await self.crawl_site(seed_url, options, sink, cancel)
        return report.results

    async def crawl_site(
        self,
        seed_url: str,
        options: OptionsLike = None,
        sink: Optional[SinkLike] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> CrawlReport:
        """
        Crawl from ``seed_url`` and return a CrawlReport.

        Args:
            seed_url: Absolute http(s) URL where the crawl starts (depth 0)
            options: CrawlOptions, a mapping of option overrides, or None for defaults
            sink: Optional progress sink notified after each page
            cancel: Optional cancellation signal; cancelling yields a partial report

        Returns:
            CrawlReport with ordered results, stats and final run state

        Raises:
            CrawlConfigurationError: If the seed URL or options are invalid
            RuntimeError: If this coordinator is already running a crawl
        """
        resolved = resolve_options(options, self.settings)
        validate_crawl_request(seed_url, resolved)

        if self.state in (RunState.RUNNING, RunState.DRAINING):
            raise RuntimeError("A crawl is already running on this coordinator")

        seed = normalize_url(seed_url.strip())
        seed_host = extract_domain(seed)
        cancel = cancel or CancelSignal()
        crawl_id = uuid4().hex[:12]
        run_log = CrawlerLoggerAdapter(get_crawler_logger(__name__), crawl_id)

        fetcher = self.fetcher
        owned_client: Optional[CrawlerHTTPClient] = None
        if fetcher is None:
            owned_client = CrawlerHTTPClient(self.settings or CrawlerSettings(), resolved.max_concurrent_requests)
            fetcher = owned_client

        started_at = datetime.now(timezone.utc)
        start_time = time.monotonic()
        self.state = RunState.RUNNING
        run_log.log_crawl_started(
            seed, seed_host, max_pages=resolved.max_pages, max_depth=resolved.max_depth,
            concurrency=resolved.max_concurrent_requests,
        )

        aggregator = ResultAggregator()
        reporter = ProgressReporter(sink, *self._reporter_limits())

        try:
            robots = await self._prepare_robots(seed, resolved, fetcher)
            frontier = Frontier(resolved, seed_host)
            processor = PageProcessor(
                fetcher, self.parser, frontier, resolved, seed_host, robots, CrawlErrorHandler()
            )

            async def handle_outcome(outcome: PageOutcome) -> None:
                result = outcome.result
                if not await aggregator.append(result):
                    return
                reporter.report(result)
                if result.errors:
                    first = result.errors[0]
                    run_log.log_page_failed(
                        result.request_path, result.depth, first.error_type.value, first.message, result.status_code
                    )
                else:
                    run_log.log_page_completed(
                        result.request_path, result.depth, result.status_code,
                        result.elapsed_milliseconds, result.links_found,
                    )
                if len(aggregator) % PROGRESS_LOG_INTERVAL == 0:
                    run_log.info(
                        "crawl_progress", pages=len(aggregator), queued=frontier.queue_size,
                        pages_by_depth=aggregator.depth_histogram(),
                    )

            pool = WorkerPool(
                frontier, processor, resolved, handle_outcome, cancel, self._crawl_delay(robots, seed)
            )

            await reporter.start()
            await frontier.try_accept(seed, 0, "")
            try:
                await pool.run()
            finally:
                self.state = RunState.DRAINING
                await reporter.shutdown()

        except BaseException:
            self.state = RunState.IDLE
            raise
        finally:
            if owned_client is not None:
                await owned_client.close()

        final_state = RunState.CANCELLED if cancel.is_cancelled else RunState.COMPLETED
        self.state = final_state

        results = aggregator.snapshot()
        stats = aggregator.get_stats()
        elapsed_ms = int((time.monotonic() - start_time) * 1000)

        if final_state is RunState.CANCELLED:
            run_log.log_crawl_cancelled(seed, len(results), cancel.reason)
        else:
            run_log.log_crawl_completed(
                seed, len(results), stats.pages_failed, elapsed_ms, pages_by_depth=stats.pages_by_depth
            )

        self.last_report = CrawlReport(
            crawl_id=crawl_id,
            start_path=seed,
            options=resolved,
            state=final_state,
            results=results,
            stats=stats,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            cancel_reason=cancel.reason,
        )
        return self.last_report

    @staticmethod
    def _crawl_delay(robots: RobotsGate, seed: str) -> Optional[float]:
        """Crawl-delay declared for the seed host, if the robots gate knows one"""
        get_crawl_delay = getattr(robots, "get_crawl_delay", None)
        if get_crawl_delay is None:
            return None
        delay = get_crawl_delay(seed)
        if delay:
            logger.info(f"Honouring robots.txt Crawl-delay of {delay}s for {seed}")
        return delay

    def _reporter_limits(self) -> tuple:
        if self.settings is None:
            return (1000, 2.0)
        return (self.settings.progress_queue_size, self.settings.progress_shutdown_grace_seconds)

    async def _prepare_robots(self, seed: str, options: CrawlOptions, fetcher: Fetcher) -> RobotsGate:
        """Pick the robots gate for this run and load the seed host's rules"""
        if not options.respect_robots_txt:
            return AllowAllRobots()

        robots = self.robots or RobotsChecker(fetcher, options.user_agent, timeout=options.timeout_seconds)
        load = getattr(robots, "load", None)
        if load is not None:
            try:
                await load(seed)
            except Exception as e:
                logger.warning(f"Could not load robots.txt for {seed}, allowing all: {e}", extra={"seed_url": seed})
        return robots


async def crawl(
    seed_url: str,
    options: OptionsLike = None,
    sink: Optional[SinkLike] = None,
    cancel: Optional[CancelSignal] = None,
    *,
    fetcher: Optional[Fetcher] = None,
    parser: Optional[HtmlParser] = None,
    robots: Optional[RobotsGate] = None,
    settings: Optional[CrawlerSettings] = None,
) -> List[CrawlResult]:
    """
    Crawl a site and return per-page results in discovery order.

    Args:
        seed_url: Absolute http(s) URL where the crawl starts
        options: CrawlOptions, a mapping of option overrides, or None for defaults
        sink: Optional progress sink
        cancel: Optional cancellation signal
        fetcher: Fetcher to use instead of the default aiohttp client
        parser: HTML parser to use instead of BeautifulSoup
        robots: Robots gate to use instead of the default robots.txt checker
        settings: Settings supplying defaults for unspecified options

    Raises:
        CrawlConfigurationError: If the seed URL or options are invalid
    """
    coordinator = CrawlCoordinator(fetcher=fetcher, parser=parser, robots=robots, settings=settings)
    return await coordinator.crawl(seed_url, options, sink, cancel)

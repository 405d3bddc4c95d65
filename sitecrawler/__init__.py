"""
sitecrawler - a bounded, breadth-first, single-site web crawler built on asyncio.
"""

from .coordinator.crawl_coordinator import CrawlCoordinator, crawl
from .core.cancellation import CancelSignal
from .core.exceptions import CrawlConfigurationError
from .core.types import CrawlError, CrawlErrorType, CrawlOptions, CrawlResult, ProgressEvent, RunState
from .storage.results import CrawlReport

__version__ = "0.1.0"

__all__ = [
    "CancelSignal",
    "CrawlConfigurationError",
    "CrawlCoordinator",
    "CrawlError",
    "CrawlErrorType",
    "CrawlOptions",
    "CrawlReport",
    "CrawlResult",
    "ProgressEvent",
    "RunState",
    "crawl",
]

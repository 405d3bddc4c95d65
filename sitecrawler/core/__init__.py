"""
Core types, protocols and exceptions shared by every crawler component.
"""

from .cancellation import CancelSignal, CrawlCancelledError
from .exceptions import (
    ContentTooLargeError,
    CrawlConfigurationError,
    CrawlerException,
    FetchConnectionError,
    FetchError,
    FetchTimeoutError,
    ParseError,
)
from .types import (
    AcceptDecision,
    CandidateLink,
    CrawlError,
    CrawlErrorType,
    CrawlOptions,
    CrawlResult,
    CrawlStats,
    CrawlTask,
    FetchResponse,
    LinkScope,
    PageOutcome,
    ProgressEvent,
    RejectReason,
    RunState,
    TaskState,
)

__all__ = [
    "AcceptDecision",
    "CancelSignal",
    "CandidateLink",
    "ContentTooLargeError",
    "CrawlCancelledError",
    "CrawlConfigurationError",
    "CrawlError",
    "CrawlErrorType",
    "CrawlOptions",
    "CrawlResult",
    "CrawlStats",
    "CrawlTask",
    "CrawlerException",
    "FetchConnectionError",
    "FetchError",
    "FetchResponse",
    "FetchTimeoutError",
    "LinkScope",
    "PageOutcome",
    "ParseError",
    "ProgressEvent",
    "RejectReason",
    "RunState",
    "TaskState",
]

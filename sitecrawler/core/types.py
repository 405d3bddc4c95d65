"""
Core types for the site crawler.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RunState(str, Enum):
    """Crawl run status"""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskState(str, Enum):
    """Page processing state"""

    DISCOVERED = "discovered"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PARSED = "parsed"
    LINKS_EXTRACTED = "links_extracted"
    DONE = "done"


class CrawlErrorType(str, Enum):
    """Types of crawl errors"""

    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class LinkScope(str, Enum):
    """Where a discovered link points relative to the seed host"""

    SAME_DOMAIN = "same_domain"
    EXTERNAL = "external"


class RejectReason(str, Enum):
    """Why the frontier refused a candidate URL"""

    INVALID_URL = "invalid_url"
    DUPLICATE = "duplicate"
    DEPTH_EXCEEDED = "depth_exceeded"
    BUDGET_EXHAUSTED = "budget_exhausted"
    EXTERNAL_DOMAIN = "external_domain"
    CLOSED = "closed"


class CrawlOptions(BaseModel):
    """Bounds and policy for a single crawl run"""

    model_config = ConfigDict(frozen=True)

    max_pages: int = 100
    max_depth: int = 3
    request_delay_ms: int = 1000
    respect_robots_txt: bool = True
    user_agent: str = "SiteCrawler/1.0"
    follow_external_links: bool = False
    max_concurrent_requests: int = 4
    timeout_seconds: int = 30


class CrawlTask(BaseModel):
    """A URL accepted into the frontier"""

    model_config = ConfigDict(frozen=True)

    id: int
    url: str
    depth: int
    found_from: str = ""


class CrawlError(BaseModel):
    """A page-level failure recorded on a CrawlResult"""

    model_config = ConfigDict(frozen=True)

    message: str
    url: str
    error_type: CrawlErrorType = CrawlErrorType.UNKNOWN
    status_code: Optional[int] = None
    depth: int = 0
    cause: Optional[str] = None

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.error_type.value}: {self.message} (status {self.status_code})"
        return f"{self.error_type.value}: {self.message}"


class CrawlResult(BaseModel):
    """Finalized outcome of one page"""

    model_config = ConfigDict(frozen=True)

    id: int
    request_path: str
    found_url: str
    depth: int
    status_code: int = 0
    errors: List[CrawlError] = Field(default_factory=list)
    response_body: Optional[str] = None
    content_type: Optional[str] = None
    elapsed_milliseconds: int = 0
    links_found: int = 0
    state: TaskState = TaskState.DONE
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def error_messages(self) -> List[str]:
        return [str(error) for error in self.errors]

    @property
    def succeeded(self) -> bool:
        return not self.errors and 200 <= self.status_code < 300

    def __str__(self) -> str:
        return f"ID:{self.id} Depth:{self.depth} Status:{self.status_code} URL:{self.request_path}"


class CandidateLink(BaseModel):
    """A normalized link extracted from a page"""

    model_config = ConfigDict(frozen=True)

    url: str
    scope: LinkScope


class AcceptDecision(BaseModel):
    """Outcome of a frontier acceptance attempt"""

    accepted: bool
    reason: Optional[RejectReason] = None
    task: Optional[CrawlTask] = None


class FetchResponse(BaseModel):
    """What the crawl engine needs to know about a fetched URL"""

    status_code: int
    body: Optional[str] = None
    elapsed_ms: int = 0
    errors: List[str] = Field(default_factory=list)
    content_type: Optional[str] = None
    final_url: Optional[str] = None


class ProgressEvent(BaseModel):
    """Notification emitted after each page is finalized"""

    model_config = ConfigDict(frozen=True)

    id: int
    url: str
    status_code: int
    depth: int
    links_found: int


class PageOutcome(BaseModel):
    """A finalized result together with the links it produced"""

    result: CrawlResult
    links: List[CandidateLink] = Field(default_factory=list)


class CrawlStats(BaseModel):
    """Summary counters for a finished run"""

    pages_crawled: int = 0
    pages_succeeded: int = 0
    pages_failed: int = 0
    total_elapsed_ms: int = 0
    pages_by_depth: Dict[int, int] = Field(default_factory=dict)
    errors_by_type: Dict[str, int] = Field(default_factory=dict)

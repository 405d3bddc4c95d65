"""
Error classification for crawl workers.

Turns exceptions raised by fetchers and parsers, and non-2xx responses, into
CrawlError values recorded on the page result. Nothing is retried.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from aiohttp import ClientError
from pydantic import BaseModel

from ..core.cancellation import CrawlCancelledError
from ..core.exceptions import (
    ContentTooLargeError,
    FetchConnectionError,
    FetchError,
    FetchTimeoutError,
    ParseError,
)
from ..core.types import CrawlError, CrawlErrorType

logger = logging.getLogger(__name__)


class ErrorClassification(BaseModel):
    """Classification of an error for reporting purposes"""

    error_type: CrawlErrorType
    is_permanent: bool
    description: str


class CrawlErrorHandler:
    """
    Classifies page-level failures and keeps per-type counters.
    """

    def __init__(self) -> None:
        self.stats: Dict[str, Any] = {
            "errors_handled": 0,
            "errors_by_type": {},
        }

    def classify_error(self, error: BaseException) -> ErrorClassification:
        """
        Classify an error to determine how it is reported.

        Args:
            error: Exception to classify

        Returns:
            ErrorClassification with handling details
        """
        if isinstance(error, CrawlCancelledError):
            return ErrorClassification(
                error_type=CrawlErrorType.CANCELLED,
                is_permanent=False,
                description=f"Cancelled: {str(error)}",
            )

        if isinstance(error, (FetchTimeoutError, asyncio.TimeoutError, TimeoutError)):
            return ErrorClassification(
                error_type=CrawlErrorType.TIMEOUT,
                is_permanent=False,
                description=f"Request timeout: {str(error) or type(error).__name__}",
            )

        if isinstance(error, ContentTooLargeError):
            return ErrorClassification(
                error_type=CrawlErrorType.HTTP_ERROR,
                is_permanent=True,
                description=str(error),
            )

        if isinstance(error, ParseError):
            return ErrorClassification(
                error_type=CrawlErrorType.PARSE_ERROR,
                is_permanent=True,
                description=f"Parse error: {str(error)}",
            )

        if isinstance(error, (FetchConnectionError, ClientError, ConnectionError, OSError)):
            return ErrorClassification(
                error_type=CrawlErrorType.CONNECTION_ERROR,
                is_permanent=False,
                description=f"Network/connection error: {str(error)}",
            )

        if isinstance(error, FetchError):
            return ErrorClassification(
                error_type=CrawlErrorType.CONNECTION_ERROR,
                is_permanent=False,
                description=f"Fetch error: {str(error)}",
            )

        return ErrorClassification(
            error_type=CrawlErrorType.UNKNOWN,
            is_permanent=False,
            description=f"Unexpected {type(error).__name__}: {str(error)}",
        )

    def to_crawl_error(
        self, error: BaseException, url: str, depth: int, status_code: Optional[int] = None
    ) -> CrawlError:
        """
        Convert an exception into a CrawlError value.

        Args:
            error: The exception that occurred
            url: URL of the page
            depth: Depth of the page
            status_code: HTTP status, when the response was received

        Returns:
            CrawlError describing the failure
        """
        classification = self.classify_error(error)
        self._count(classification.error_type)

        cause = error.original_error if isinstance(error, FetchError) else None
        return CrawlError(
            message=classification.description,
            url=url,
            error_type=classification.error_type,
            status_code=status_code,
            depth=depth,
            cause=repr(cause) if cause is not None else type(error).__name__,
        )

    def http_status_error(self, url: str, depth: int, status_code: int) -> CrawlError:
        """Build the CrawlError recorded for a non-2xx response"""
        self._count(CrawlErrorType.HTTP_ERROR)
        return CrawlError(
            message=f"HTTP {status_code} error for {url}",
            url=url,
            error_type=CrawlErrorType.HTTP_ERROR,
            status_code=status_code,
            depth=depth,
        )

    def timeout_error(self, url: str, depth: int, timeout: float) -> CrawlError:
        """Build the CrawlError recorded when page processing exceeds its time budget"""
        self._count(CrawlErrorType.TIMEOUT)
        return CrawlError(
            message=f"Page processing timed out after {timeout}s",
            url=url,
            error_type=CrawlErrorType.TIMEOUT,
            depth=depth,
        )

    def _count(self, error_type: CrawlErrorType) -> None:
        self.stats["errors_handled"] += 1
        errors_by_type = self.stats["errors_by_type"]
        errors_by_type[error_type.value] = errors_by_type.get(error_type.value, 0) + 1

    def get_stats(self) -> Dict[str, Any]:
        """Get error handler statistics"""
        return {
            "errors_handled": self.stats["errors_handled"],
            "errors_by_type": dict(self.stats["errors_by_type"]),
        }

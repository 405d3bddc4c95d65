"""
Custom exceptions for the site crawler.

Only configuration errors ever escape a crawl run. Fetch and parse exceptions are
raised by the collaborators and converted into CrawlError values on the page result.
"""


from typing import List, Optional


class CrawlerException(Exception):
    """Base exception for all crawler-related errors."""

    pass


class CrawlConfigurationError(CrawlerException, ValueError):
    """Raised before any fetch when the seed URL or crawl options are invalid."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Invalid crawl configuration: {'; '.join(errors)}")


class FetchError(CrawlerException):
    """Base exception for transport-level fetch failures."""

    def __init__(self, message: str, url: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.url = url
        self.original_error = original_error


class FetchTimeoutError(FetchError):
    """Raised when a fetch does not complete within its timeout."""

    def __init__(self, url: str, timeout: float, original_error: Optional[Exception] = None):
        self.timeout = timeout
        super().__init__(f"Request to {url} timed out after {timeout}s", url, original_error)


class FetchConnectionError(FetchError):
    """Raised for DNS, connection and protocol failures."""

    pass


class ContentTooLargeError(FetchError):
    """Raised when response content exceeds size limits"""

    def __init__(self, url: str, content_length: int, max_length: int):
        self.content_length = content_length
        self.max_length = max_length
        super().__init__(f"Content too large: {content_length} bytes > {max_length} bytes for {url}", url)


class ParseError(CrawlerException):
    """Raised when an HTML document cannot be parsed."""

    pass

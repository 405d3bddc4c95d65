"""
Protocol definitions for the collaborators the crawl engine consumes.
"""

from typing import Any, Awaitable, Iterable, Optional, Protocol, Union, runtime_checkable

from .cancellation import CancelSignal
from .types import FetchResponse, ProgressEvent


class Fetcher(Protocol):
    """Protocol for URL fetchers."""

    async def fetch(
        self, url: str, user_agent: str, timeout: float, cancel: Optional[CancelSignal] = None
    ) -> FetchResponse:
        """Fetch a URL and return the response, raising FetchError on transport failure."""
        ...


class Document(Protocol):
    """Parsed HTML document exposing anchor enumeration."""

    @property
    def base_href(self) -> Optional[str]: ...

    def iter_hrefs(self) -> Iterable[str]: ...


class HtmlParser(Protocol):
    """Protocol for HTML parsers."""

    def parse(self, body: str) -> Document:
        """Parse a response body, raising ParseError if it cannot be parsed."""
        ...


@runtime_checkable
class RobotsGate(Protocol):
    """Coarse allow/deny gate consulted before following a link."""

    def is_allowed(self, url: str) -> bool: ...


class ProgressSink(Protocol):
    """Receiver of page-completion notifications."""

    def on_page_completed(self, event: ProgressEvent) -> Union[None, Awaitable[Any]]: ...

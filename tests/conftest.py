"""Shared fixtures: an in-memory site served by a fake fetcher."""

import asyncio
import time
from typing import Dict, List, Optional, Tuple, Union

import pytest

from sitecrawler.core.cancellation import CancelSignal
from sitecrawler.core.types import CrawlOptions, FetchResponse, ProgressEvent

PageDef = Union[str, Tuple[int, str], Tuple[int, str, str], BaseException]


def html(*hrefs: str, title: str = "page") -> str:
    """Build a small HTML page linking to ``hrefs``."""
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in hrefs)
    return f"<html><head><title>{title}</title></head><body>{anchors}</body></html>"


class FakeFetcher:
    """
    Serves pages from a dict keyed by URL.

    A value may be an HTML string (200), a (status, body) or (status, body,
    content_type) tuple, or an exception instance to raise. Unknown URLs are 404.
    """

    def __init__(self, pages: Dict[str, PageDef], delay: float = 0.0, delays: Optional[Dict[str, float]] = None):
        self.pages = pages
        self.delay = delay
        self.delays = delays or {}
        self.requests: List[str] = []
        self.request_times: List[float] = []
        self.user_agents: List[str] = []
        self.active = 0
        self.peak_active = 0

    async def fetch(
        self, url: str, user_agent: str, timeout: float, cancel: Optional[CancelSignal] = None
    ) -> FetchResponse:
        self.requests.append(url)
        self.request_times.append(time.monotonic())
        self.user_agents.append(user_agent)
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            delay = self.delays.get(url, self.delay)
            if delay:
                await asyncio.sleep(delay)

            entry = self.pages.get(url)
            if entry is None:
                return FetchResponse(status_code=404, body="not found", elapsed_ms=1, content_type="text/plain")
            if isinstance(entry, BaseException):
                raise entry
            if isinstance(entry, tuple):
                status, body = entry[0], entry[1]
                content_type = entry[2] if len(entry) > 2 else "text/html; charset=utf-8"
                return FetchResponse(status_code=status, body=body, elapsed_ms=1, content_type=content_type)
            return FetchResponse(status_code=200, body=entry, elapsed_ms=1, content_type="text/html; charset=utf-8")
        finally:
            self.active -= 1

    @property
    def page_requests(self) -> List[str]:
        """Requests excluding robots.txt lookups"""
        return [url for url in self.requests if not url.endswith("/robots.txt")]


class RecordingSink:
    def __init__(self) -> None:
        self.events: List[ProgressEvent] = []

    def on_page_completed(self, event: ProgressEvent) -> None:
        self.events.append(event)


@pytest.fixture
def fast_options() -> CrawlOptions:
    """Options with no politeness delay and robots disabled"""
    return CrawlOptions(
        max_pages=100,
        max_depth=3,
        request_delay_ms=0,
        respect_robots_txt=False,
        max_concurrent_requests=4,
        timeout_seconds=5,
    )


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()

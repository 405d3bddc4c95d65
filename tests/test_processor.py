"""Tests for the page processor."""

import asyncio

import pytest

from sitecrawler.core.cancellation import CancelSignal
from sitecrawler.core.exceptions import FetchConnectionError, FetchTimeoutError, ParseError
from sitecrawler.core.types import CrawlErrorType, CrawlOptions, CrawlTask, LinkScope
from sitecrawler.discovery.frontier import Frontier
from sitecrawler.http_client.parser import SoupHtmlParser
from sitecrawler.worker.processor import PageProcessor

from .conftest import FakeFetcher, html

SEED = "https://example.com/"


class BrokenParser:
    def parse(self, body):
        raise ParseError("unbalanced markup")


class DenyPrivate:
    def is_allowed(self, url):
        return "/private" not in url


def make_processor(pages, parser=None, robots=None, **overrides):
    options = CrawlOptions(
        **{"request_delay_ms": 0, "respect_robots_txt": robots is not None, "timeout_seconds": 5, **overrides}
    )
    frontier = Frontier(options, "example.com")
    fetcher = FakeFetcher(pages)
    processor = PageProcessor(fetcher, parser or SoupHtmlParser(), frontier, options, "example.com", robots)
    return processor, frontier, fetcher


def seed_task() -> CrawlTask:
    return CrawlTask(id=1, url=SEED, depth=0)


@pytest.mark.asyncio
async def test_successful_page_extracts_links():
    processor, _, fetcher = make_processor({SEED: html("/a", "/b", "https://other.org/")})

    outcome = await processor.process(seed_task())

    result = outcome.result
    assert result.status_code == 200
    assert result.errors == []
    assert result.links_found == 3
    assert result.response_body.startswith("<html>")
    assert result.request_path == SEED
    assert [link.scope for link in outcome.links] == [LinkScope.SAME_DOMAIN, LinkScope.SAME_DOMAIN, LinkScope.EXTERNAL]
    assert fetcher.user_agents == ["SiteCrawler/1.0"]


@pytest.mark.asyncio
async def test_http_error_is_recorded_without_links():
    processor, _, _ = make_processor({SEED: (500, html("/a"))})

    outcome = await processor.process(seed_task())

    assert outcome.result.status_code == 500
    assert outcome.result.links_found == 0
    assert outcome.links == []
    assert outcome.result.errors[0].error_type is CrawlErrorType.HTTP_ERROR
    assert outcome.result.errors[0].status_code == 500


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,expected",
    [
        (FetchTimeoutError(SEED, 5), CrawlErrorType.TIMEOUT),
        (FetchConnectionError("refused", SEED), CrawlErrorType.CONNECTION_ERROR),
        (RuntimeError("boom"), CrawlErrorType.UNKNOWN),
    ],
)
async def test_fetch_exceptions_become_crawl_errors(error, expected):
    processor, _, _ = make_processor({SEED: error})

    outcome = await processor.process(seed_task())

    assert outcome.result.status_code == 0
    assert [e.error_type for e in outcome.result.errors] == [expected]
    assert outcome.result.errors[0].url == SEED


@pytest.mark.asyncio
async def test_parse_error_keeps_status():
    processor, _, _ = make_processor({SEED: html("/a")}, parser=BrokenParser())

    outcome = await processor.process(seed_task())

    assert outcome.result.status_code == 200
    assert outcome.result.links_found == 0
    assert outcome.result.errors[0].error_type is CrawlErrorType.PARSE_ERROR


@pytest.mark.asyncio
async def test_non_html_content_is_not_parsed():
    processor, _, _ = make_processor({SEED: (200, '{"href": "/a"}', "application/json")})

    outcome = await processor.process(seed_task())

    assert outcome.result.succeeded
    assert outcome.result.links_found == 0


@pytest.mark.asyncio
async def test_cancellation_interrupts_fetch():
    processor, _, fetcher = make_processor({SEED: html()})
    fetcher.delay = 10
    cancel = CancelSignal()

    pending = asyncio.create_task(processor.process(seed_task(), cancel))
    await asyncio.sleep(0.01)
    cancel.cancel("test")
    outcome = await asyncio.wait_for(pending, timeout=1)

    assert [e.error_type for e in outcome.result.errors] == [CrawlErrorType.CANCELLED]


@pytest.mark.asyncio
async def test_enqueue_links_applies_domain_and_robots_policy():
    pages = {SEED: html("/a", "/private/x", "https://other.org/")}
    processor, frontier, _ = make_processor(pages, robots=DenyPrivate())
    await frontier.try_accept(SEED, 0)

    outcome = await processor.process(seed_task())
    accepted = await processor.enqueue_links(outcome)

    assert accepted == 1
    queued = [await frontier.dequeue(), await frontier.dequeue()]
    assert queued[1].url == "https://example.com/a"
    assert queued[1].depth == 1
    assert queued[1].found_from == SEED
    assert processor.stats["robots_blocked"] == 1
    assert processor.stats["external_links_skipped"] == 1


@pytest.mark.asyncio
async def test_enqueue_links_ignores_robots_when_disabled():
    pages = {SEED: html("/private/x")}
    processor, frontier, _ = make_processor(pages, robots=DenyPrivate(), respect_robots_txt=False)

    outcome = await processor.process(seed_task())

    assert await processor.enqueue_links(outcome) == 1
    queued = await frontier.dequeue()
    assert queued.url == "https://example.com/private/x"

"""Tests for result aggregation and crawl reports."""

from datetime import datetime, timezone
from xml.etree import ElementTree as ET

import pytest

from sitecrawler.core.types import CrawlError, CrawlErrorType, CrawlOptions, CrawlResult, RunState
from sitecrawler.storage.results import SITEMAP_NAMESPACE, CrawlReport, ResultAggregator, generate_sitemap_xml


def make_result(result_id, depth=0, status=200, errors=None, path=None):
    url = path or f"https://example.com/p{result_id}"
    return CrawlResult(
        id=result_id,
        request_path=url,
        found_url="",
        depth=depth,
        status_code=status,
        errors=errors or [],
        elapsed_milliseconds=10,
    )


@pytest.mark.asyncio
async def test_snapshot_is_ordered_by_id():
    aggregator = ResultAggregator()
    for result_id in (3, 1, 2):
        await aggregator.append(make_result(result_id))

    assert [result.id for result in aggregator.snapshot()] == [1, 2, 3]


@pytest.mark.asyncio
async def test_duplicate_ids_are_rejected():
    aggregator = ResultAggregator()
    assert await aggregator.append(make_result(1))
    assert not await aggregator.append(make_result(1, path="https://example.com/other"))

    assert len(aggregator) == 1
    assert aggregator.duplicates_rejected == 1
    assert aggregator.snapshot()[0].request_path == "https://example.com/p1"


@pytest.mark.asyncio
async def test_stats_and_histogram():
    aggregator = ResultAggregator()
    not_found = CrawlError(message="HTTP 404", url="https://example.com/p3", error_type=CrawlErrorType.HTTP_ERROR, status_code=404)
    await aggregator.append(make_result(1, depth=0))
    await aggregator.append(make_result(2, depth=1))
    await aggregator.append(make_result(3, depth=1, status=404, errors=[not_found]))

    stats = aggregator.get_stats()
    assert aggregator.depth_histogram() == {0: 1, 1: 2}
    assert stats.pages_crawled == 3
    assert stats.pages_succeeded == 2
    assert stats.pages_failed == 1
    assert stats.errors_by_type == {"http_error": 1}
    assert stats.total_elapsed_ms == 30
    assert [result.id for result in aggregator.failed()] == [3]


def test_result_string_and_error_messages():
    error = CrawlError(message="HTTP 404", url="https://example.com/x", error_type=CrawlErrorType.HTTP_ERROR, status_code=404)
    result = make_result(7, depth=2, status=404, errors=[error], path="https://example.com/x")

    assert str(result) == "ID:7 Depth:2 Status:404 URL:https://example.com/x"
    assert result.error_messages == ["http_error: HTTP 404 (status 404)"]
    assert not result.succeeded


def test_sitemap_contains_only_ok_pages():
    finished = datetime(2024, 5, 1, tzinfo=timezone.utc)
    report = CrawlReport(
        crawl_id="abc",
        start_path="https://example.com/",
        options=CrawlOptions(),
        state=RunState.COMPLETED,
        results=[
            make_result(1, path="https://example.com/"),
            make_result(2, status=404, path="https://example.com/missing"),
            make_result(3, path="https://example.com/about"),
        ],
        started_at=finished,
        finished_at=finished,
    )

    root = ET.fromstring(report.sitemap_xml().split("\n", 1)[1])
    ns = {"sm": SITEMAP_NAMESPACE}
    locs = [loc.text for loc in root.findall("sm:url/sm:loc", ns)]
    assert locs == ["https://example.com/", "https://example.com/about"]
    assert root.find("sm:url/sm:lastmod", ns).text == "2024-05-01"
    assert root.find("sm:url/sm:changefreq", ns).text == "weekly"
    assert root.find("sm:url/sm:priority", ns).text == "0.5"


def test_empty_sitemap():
    assert generate_sitemap_xml([]) == ""

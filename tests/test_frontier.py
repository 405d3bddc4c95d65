"""Tests for the frontier and its dedup store."""

import asyncio

import pytest

from sitecrawler.core.types import CrawlOptions, RejectReason
from sitecrawler.discovery.frontier import Frontier


def make_frontier(**overrides) -> Frontier:
    options = CrawlOptions(**{"max_pages": 10, "max_depth": 2, **overrides})
    return Frontier(options, "example.com")


@pytest.mark.asyncio
async def test_accept_assigns_sequential_ids_and_normalizes():
    frontier = make_frontier()

    first = await frontier.try_accept("https://EXAMPLE.com/", 0)
    second = await frontier.try_accept("https://example.com/a/?q=1", 1, "https://example.com/")

    assert first.accepted and first.task.id == 1 and first.task.url == "https://example.com/"
    assert second.accepted and second.task.id == 2
    assert second.task.url == "https://example.com/a"
    assert second.task.found_from == "https://example.com/"
    assert frontier.accepted_count == 2


@pytest.mark.asyncio
async def test_rejection_reasons():
    frontier = make_frontier(max_pages=2, max_depth=1)
    await frontier.try_accept("https://example.com/", 0)

    assert (await frontier.try_accept("not a url", 1)).reason is RejectReason.INVALID_URL
    assert (await frontier.try_accept("https://example.com/#frag", 1)).reason is RejectReason.DUPLICATE
    assert (await frontier.try_accept("https://example.com/deep", 2)).reason is RejectReason.DEPTH_EXCEEDED
    assert (await frontier.try_accept("https://other.org/", 1)).reason is RejectReason.EXTERNAL_DOMAIN
    assert (await frontier.try_accept("https://example.com/a", 1)).accepted
    assert (await frontier.try_accept("https://example.com/b", 1)).reason is RejectReason.BUDGET_EXHAUSTED

    stats = frontier.get_stats()
    assert stats["urls_accepted"] == 2
    assert stats["rejected_by_reason"]["duplicate"] == 1
    assert stats["remaining_budget"] == 0


@pytest.mark.asyncio
async def test_depth_rejected_url_is_not_claimed():
    frontier = make_frontier(max_depth=1)
    assert not (await frontier.try_accept("https://example.com/x", 2)).accepted
    assert (await frontier.try_accept("https://example.com/x", 1)).accepted


@pytest.mark.asyncio
async def test_external_accepted_when_following_external_links():
    frontier = make_frontier(follow_external_links=True)
    decision = await frontier.try_accept("https://other.org/page", 1)
    assert decision.accepted


@pytest.mark.asyncio
async def test_concurrent_duplicate_discoveries_accept_exactly_once():
    frontier = make_frontier(max_pages=100)
    decisions = await asyncio.gather(
        *[frontier.try_accept("https://example.com/same", 1, f"https://example.com/p{i}") for i in range(50)]
    )
    accepted = [decision for decision in decisions if decision.accepted]
    assert len(accepted) == 1
    assert frontier.queue_size == 1


@pytest.mark.asyncio
async def test_dequeue_is_fifo():
    frontier = make_frontier()
    for path in ("/", "/a", "/b"):
        await frontier.try_accept(f"https://example.com{path}", 0 if path == "/" else 1)

    urls = [(await frontier.dequeue()).url for _ in range(3)]
    assert urls == ["https://example.com/", "https://example.com/a", "https://example.com/b"]


@pytest.mark.asyncio
async def test_dequeue_returns_none_when_empty_and_idle():
    frontier = make_frontier()
    assert await frontier.dequeue() is None


@pytest.mark.asyncio
async def test_dequeue_waits_for_in_flight_task_to_discover_links():
    frontier = make_frontier()
    await frontier.try_accept("https://example.com/", 0)
    seed = await frontier.dequeue()

    waiter = asyncio.create_task(frontier.dequeue())
    await asyncio.sleep(0.01)
    assert not waiter.done()

    await frontier.try_accept("https://example.com/child", 1, seed.url)
    child = await asyncio.wait_for(waiter, timeout=1)
    assert child.url == "https://example.com/child"

    await frontier.task_done(seed)
    await frontier.task_done(child)
    assert await frontier.dequeue() is None


@pytest.mark.asyncio
async def test_task_done_releases_waiters_when_exhausted():
    frontier = make_frontier()
    await frontier.try_accept("https://example.com/", 0)
    seed = await frontier.dequeue()

    waiters = [asyncio.create_task(frontier.dequeue()) for _ in range(3)]
    await asyncio.sleep(0.01)
    await frontier.task_done(seed)

    assert await asyncio.wait_for(asyncio.gather(*waiters), timeout=1) == [None, None, None]


@pytest.mark.asyncio
async def test_close_wakes_waiters_and_rejects_new_urls():
    frontier = make_frontier()
    await frontier.try_accept("https://example.com/", 0)
    await frontier.dequeue()

    waiter = asyncio.create_task(frontier.dequeue())
    await asyncio.sleep(0.01)
    await frontier.close()

    assert await asyncio.wait_for(waiter, timeout=1) is None
    assert (await frontier.try_accept("https://example.com/late", 1)).reason is RejectReason.CLOSED

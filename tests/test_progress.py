"""Tests for the progress reporter."""

import asyncio
import time

import pytest

from sitecrawler.core.types import CrawlResult
from sitecrawler.progress.reporter import ProgressReporter


def make_result(result_id):
    return CrawlResult(
        id=result_id,
        request_path=f"https://example.com/p{result_id}",
        found_url="",
        depth=1,
        status_code=200,
        links_found=2,
    )


@pytest.mark.asyncio
async def test_sync_sink_receives_events(recording_sink):
    reporter = ProgressReporter(recording_sink)
    await reporter.start()

    reporter.report(make_result(1))
    reporter.report(make_result(2))
    await reporter.shutdown()

    assert [event.id for event in recording_sink.events] == [1, 2]
    event = recording_sink.events[0]
    assert (event.url, event.status_code, event.depth, event.links_found) == ("https://example.com/p1", 200, 1, 2)


@pytest.mark.asyncio
async def test_async_callable_sink():
    received = []

    async def sink(event):
        await asyncio.sleep(0)
        received.append(event.id)

    reporter = ProgressReporter(sink)
    await reporter.start()
    reporter.report(make_result(5))
    await reporter.shutdown()

    assert received == [5]
    assert reporter.get_stats()["events_delivered"] == 1


@pytest.mark.asyncio
async def test_failing_sink_is_isolated():
    class FailingSink:
        def on_page_completed(self, event):
            raise RuntimeError("ui disconnected")

    reporter = ProgressReporter(FailingSink())
    await reporter.start()
    reporter.report(make_result(1))
    reporter.report(make_result(2))
    await reporter.shutdown()

    assert reporter.stats["sink_errors"] == 2


@pytest.mark.asyncio
async def test_full_queue_drops_events():
    reporter = ProgressReporter(lambda event: None, max_queue_size=1)

    reporter.report(make_result(1))
    reporter.report(make_result(2))

    assert reporter.stats["events_dropped"] == 1
    assert reporter.get_stats()["queue_size"] == 1


@pytest.mark.asyncio
async def test_slow_sink_is_abandoned_after_grace_period():
    async def slow_sink(event):
        await asyncio.sleep(10)

    reporter = ProgressReporter(slow_sink, shutdown_grace_seconds=0.05)
    await reporter.start()
    reporter.report(make_result(1))
    reporter.report(make_result(2))

    await asyncio.wait_for(reporter.shutdown(), timeout=1)

    assert reporter.stats["events_abandoned"] >= 1
    assert reporter.stats["events_delivered"] == 0


@pytest.mark.asyncio
async def test_no_sink_is_noop():
    reporter = ProgressReporter(None)
    await reporter.start()
    reporter.report(make_result(1))
    await reporter.shutdown()

    assert not reporter.enabled
    assert reporter.stats["events_reported"] == 0


def test_invalid_sink_rejected():
    with pytest.raises(TypeError):
        ProgressReporter(object())


@pytest.mark.asyncio
async def test_blocking_sync_sink_does_not_stall_the_loop():
    def slow_sink(event):
        time.sleep(0.3)

    reporter = ProgressReporter(slow_sink, shutdown_grace_seconds=1.0)
    await reporter.start()
    reporter.report(make_result(1))
    await asyncio.sleep(0.01)

    started = time.monotonic()
    await asyncio.sleep(0.05)
    stalled_for = time.monotonic() - started

    await reporter.shutdown()

    assert stalled_for < 0.2
    assert reporter.stats["events_delivered"] == 1

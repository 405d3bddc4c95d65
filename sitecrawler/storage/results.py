"""
Result aggregation and crawl reports.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from xml.etree import ElementTree as ET

from pydantic import BaseModel, Field

from ..core.types import CrawlOptions, CrawlResult, CrawlStats, RunState

logger = logging.getLogger(__name__)

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"


class ResultAggregator:
    """
    Collects finalized CrawlResults from all workers of a run.

    Results are keyed by task id, so the snapshot is in discovery order
    regardless of completion order.
    """

    def __init__(self) -> None:
        self._results: Dict[int, CrawlResult] = {}
        self._lock = asyncio.Lock()
        self.duplicates_rejected = 0

    async def append(self, result: CrawlResult) -> bool:
        """
        Add a finalized result.

        Returns:
            False if a result with the same id was already recorded
        """
        async with self._lock:
            if result.id in self._results:
                self.duplicates_rejected += 1
                logger.error(
                    f"Duplicate result for task {result.id} ignored",
                    extra={"task_id": result.id, "url": result.request_path},
                )
                return False
            self._results[result.id] = result
            return True

    def snapshot(self) -> List[CrawlResult]:
        """Return all results ordered by id"""
        return [self._results[result_id] for result_id in sorted(self._results)]

    def __len__(self) -> int:
        return len(self._results)

    def failed(self) -> List[CrawlResult]:
        return [result for result in self.snapshot() if result.errors]

    def depth_histogram(self) -> Dict[int, int]:
        """Number of finalized pages per depth"""
        histogram: Dict[int, int] = {}
        for result in self._results.values():
            histogram[result.depth] = histogram.get(result.depth, 0) + 1
        return dict(sorted(histogram.items()))

    def get_stats(self) -> CrawlStats:
        """Summarize the recorded results"""
        errors_by_type: Dict[str, int] = {}
        succeeded = 0
        total_elapsed_ms = 0

        for result in self._results.values():
            total_elapsed_ms += result.elapsed_milliseconds
            if result.errors:
                for error in result.errors:
                    key = error.error_type.value
                    errors_by_type[key] = errors_by_type.get(key, 0) + 1
            else:
                succeeded += 1

        return CrawlStats(
            pages_crawled=len(self._results),
            pages_succeeded=succeeded,
            pages_failed=len(self._results) - succeeded,
            total_elapsed_ms=total_elapsed_ms,
            pages_by_depth=self.depth_histogram(),
            errors_by_type=errors_by_type,
        )


def generate_sitemap_xml(urls: List[str], lastmod: Optional[datetime] = None) -> str:
    """
    Build a sitemaps.org urlset document.

    Args:
        urls: Page URLs in the order they should appear
        lastmod: Modification date written for every entry (defaults to today, UTC)

    Returns:
        XML document as a string, or "" when there are no URLs
    """
    if not urls:
        return ""

    lastmod_text = (lastmod or datetime.now(timezone.utc)).strftime("%Y-%m-%d")

    ET.register_namespace("", SITEMAP_NAMESPACE)
    urlset = ET.Element(f"{{{SITEMAP_NAMESPACE}}}urlset")
    for url in urls:
        entry = ET.SubElement(urlset, f"{{{SITEMAP_NAMESPACE}}}url")
        ET.SubElement(entry, f"{{{SITEMAP_NAMESPACE}}}loc").text = url
        ET.SubElement(entry, f"{{{SITEMAP_NAMESPACE}}}lastmod").text = lastmod_text
        ET.SubElement(entry, f"{{{SITEMAP_NAMESPACE}}}changefreq").text = "weekly"
        ET.SubElement(entry, f"{{{SITEMAP_NAMESPACE}}}priority").text = "0.5"

    ET.indent(urlset)
    body = ET.tostring(urlset, encoding="unicode")
    return '<?xml version="1.0" encoding="utf-8"?>\n' + body


class CrawlReport(BaseModel):
    """Everything known about a finished crawl run"""

    crawl_id: str
    start_path: str
    options: CrawlOptions
    state: RunState
    results: List[CrawlResult] = Field(default_factory=list)
    stats: CrawlStats = Field(default_factory=CrawlStats)
    started_at: datetime
    finished_at: datetime
    cancel_reason: Optional[str] = None

    @property
    def max_pages_crawled(self) -> int:
        return self.options.max_pages

    @property
    def is_crawling(self) -> bool:
        return self.state in (RunState.RUNNING, RunState.DRAINING)

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def sitemap_urls(self) -> List[str]:
        """Distinct URLs of pages that returned 200, in discovery order"""
        seen = set()
        urls: List[str] = []
        for result in self.results:
            if result.status_code == 200 and result.request_path not in seen:
                seen.add(result.request_path)
                urls.append(result.request_path)
        return urls

    def sitemap_xml(self) -> str:
        return generate_sitemap_xml(self.sitemap_urls(), self.finished_at)

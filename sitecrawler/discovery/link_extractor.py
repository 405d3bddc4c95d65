"""
Outbound link extraction from parsed HTML documents.
"""

import logging
from typing import List, Set

from ..core.protocols import Document
from ..core.types import CandidateLink, LinkScope
from ..utils.url import (
    extract_domain,
    is_crawlable_file_type,
    is_system_path,
    resolve_relative_url,
    try_normalize_url,
)

logger = logging.getLogger(__name__)

IGNORED_SCHEMES = ("javascript:", "mailto:", "tel:", "data:", "ftp:", "file:", "sms:")


def _resolve_base(document: Document, base_url: str) -> str:
    """Apply the document's <base href>, if any, to the page URL"""
    base_href = document.base_href
    if not base_href:
        return base_url
    try:
        return resolve_relative_url(base_url, base_href)
    except ValueError:
        return base_url


def extract_links(document: Document, base_url: str, seed_host: str) -> List[CandidateLink]:
    """
    Extract normalized, deduplicated candidate links from a document.

    Links are returned in document order. Query strings and fragments are removed,
    non-http(s) schemes, non-page resources and well-known system paths are dropped.

    Args:
        document: Parsed HTML document
        base_url: URL the document was fetched from
        seed_host: Host of the crawl seed, used to classify link scope

    Returns:
        List of CandidateLink
    """
    base = _resolve_base(document, base_url)
    seed_host = seed_host.lower()

    links: List[CandidateLink] = []
    seen: Set[str] = set()
    skipped = 0

    for raw_href in document.iter_hrefs():
        href = raw_href.strip()
        if not href or href.startswith("#"):
            continue
        if href.lower().startswith(IGNORED_SCHEMES):
            continue

        try:
            absolute = resolve_relative_url(base, href)
        except ValueError:
            skipped += 1
            continue

        normalized = try_normalize_url(absolute)
        if normalized is None:
            skipped += 1
            continue

        if not is_crawlable_file_type(normalized) or is_system_path(normalized):
            skipped += 1
            continue

        if normalized in seen:
            continue
        seen.add(normalized)

        scope = LinkScope.SAME_DOMAIN if extract_domain(normalized) == seed_host else LinkScope.EXTERNAL
        links.append(CandidateLink(url=normalized, scope=scope))

    if skipped:
        logger.debug(f"Skipped {skipped} unusable links on {base_url}")

    return links

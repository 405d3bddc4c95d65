"""
HTML parsing for the site crawler.

Wraps BeautifulSoup behind the HtmlParser contract: a parsed document only
needs to expose its <base href> and the href of every anchor.
"""

import logging
import re
from typing import Any, Dict, Iterator, Optional

from bs4 import BeautifulSoup

from ..core.exceptions import ParseError

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml")

_HTML_SNIFF_PATTERN = re.compile(r"<\s*(!doctype\s+html|html|head|body|a\s)", re.IGNORECASE)


def decode_content(content: bytes, content_type: str = "") -> str:
    """
    Decode response content to text with proper encoding detection.

    Args:
        content: Raw response bytes
        content_type: Content-Type header value

    Returns:
        Decoded text
    """
    encoding = "utf-8"

    if content_type:
        charset_match = re.search(r"charset=([^;]+)", content_type.lower())
        if charset_match:
            encoding = charset_match.group(1).strip().strip("\"'")

    try:
        return content.decode(encoding)
    except (UnicodeDecodeError, LookupError):
        # Fallback to common encodings
        for fallback_encoding in ["utf-8", "cp1252"]:
            try:
                return content.decode(fallback_encoding)
            except (UnicodeDecodeError, LookupError):
                continue

        # iso-8859-1 maps every byte, so this cannot fail
        return content.decode("iso-8859-1")


def looks_like_html(content_type: Optional[str], body: Optional[str]) -> bool:
    """
    Decide whether a response should be parsed for links.

    The Content-Type header wins when present; otherwise the first kilobyte of the
    body is sniffed for HTML markup.
    """
    if not body:
        return False

    if content_type:
        lowered = content_type.lower()
        return any(html_type in lowered for html_type in HTML_CONTENT_TYPES)

    return _HTML_SNIFF_PATTERN.search(body[:1024]) is not None


class SoupDocument:
    """Parsed HTML document backed by BeautifulSoup"""

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup

    @property
    def base_href(self) -> Optional[str]:
        base = self.soup.find("base", href=True)
        if base is None:
            return None
        href = str(base.get("href", "")).strip()
        return href or None

    def iter_hrefs(self) -> Iterator[str]:
        for anchor in self.soup.find_all("a", href=True):
            href = anchor.get("href")
            if isinstance(href, list):
                # Multi-valued attribute config
                href = " ".join(href)
            if href is not None:
                yield str(href)


class SoupHtmlParser:
    """
    HTML parser implementing the HtmlParser contract with BeautifulSoup.
    """

    def __init__(self, features: str = "html.parser"):
        self.features = features

        self.stats = {
            "documents_parsed": 0,
            "successful_parses": 0,
            "failed_parses": 0,
        }

    def parse(self, body: str) -> SoupDocument:
        """
        Parse an HTML body.

        Args:
            body: Decoded HTML text

        Returns:
            SoupDocument exposing anchors and base href

        Raises:
            ParseError: If parsing fails
        """
        self.stats["documents_parsed"] += 1
        try:
            soup = BeautifulSoup(body, self.features)
        except Exception as e:
            self.stats["failed_parses"] += 1
            logger.warning(f"Error parsing HTML document: {e}")
            raise ParseError(f"Failed to parse HTML content: {str(e)}") from e

        self.stats["successful_parses"] += 1
        return SoupDocument(soup)

    def get_stats(self) -> Dict[str, Any]:
        """Get parser statistics"""
        stats: Dict[str, Any] = dict(self.stats)
        if stats["documents_parsed"] > 0:
            stats["success_rate"] = stats["successful_parses"] / stats["documents_parsed"]
        else:
            stats["success_rate"] = 0.0
        return stats

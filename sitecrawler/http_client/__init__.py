"""
Default collaborators: aiohttp fetcher, BeautifulSoup parser and robots.txt gate.
"""

from .client import CrawlerHTTPClient
from .parser import SoupHtmlParser, decode_content, looks_like_html
from .robots import AllowAllRobots, RobotsChecker

__all__ = [
    "AllowAllRobots",
    "CrawlerHTTPClient",
    "RobotsChecker",
    "SoupHtmlParser",
    "decode_content",
    "looks_like_html",
]

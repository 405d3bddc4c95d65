"""
Robots.txt checking for the site crawler.

robots.txt files are fetched through the crawler's own Fetcher and parsed with
urllib.robotparser. Checks are synchronous against the per-host cache; hosts whose
robots.txt was never loaded are allowed.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

from ..core.exceptions import FetchError
from ..core.protocols import Fetcher
from ..utils.url import get_robots_txt_url

logger = logging.getLogger(__name__)


def _host_key(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


class RobotsChecker:
    """
    robots.txt gate with a per-host cache of parsed rules.
    """

    def __init__(self, fetcher: Fetcher, user_agent: str, timeout: float = 10.0):
        """
        Initialize the robots checker.

        Args:
            fetcher: Fetcher used to download robots.txt
            user_agent: User agent matched against robots.txt groups
            timeout: Timeout for the robots.txt request in seconds
        """
        self.fetcher = fetcher
        self.user_agent = user_agent
        self.timeout = timeout

        # host key -> parser, or None when the host has no usable robots.txt
        self._parsers: Dict[str, Optional[RobotFileParser]] = {}

        self.stats = {
            "checks_performed": 0,
            "urls_allowed": 0,
            "urls_blocked": 0,
            "robots_fetched": 0,
            "robots_missing": 0,
            "fetch_errors": 0,
        }

    async def load(self, url: str) -> None:
        """
        Fetch and cache robots.txt for the host of ``url``.

        Failures are logged and leave the host allowed.
        """
        key = _host_key(url)
        if key in self._parsers:
            return

        robots_url = get_robots_txt_url(url)
        try:
            response = await self.fetcher.fetch(robots_url, self.user_agent, self.timeout)
        except FetchError as e:
            self.stats["fetch_errors"] += 1
            logger.warning(f"Error fetching robots.txt from {robots_url}: {e}", extra={"url": robots_url})
            self._parsers[key] = None
            return

        if response.status_code != 200 or not response.body:
            self.stats["robots_missing"] += 1
            logger.debug(f"No robots.txt for {key} (status {response.status_code})")
            self._parsers[key] = None
            return

        self._parsers[key] = self.parse_robots_txt(response.body, robots_url)
        self.stats["robots_fetched"] += 1
        logger.info(f"Loaded robots.txt for {key}", extra={"url": robots_url})

    def parse_robots_txt(self, content: str, robots_url: str) -> RobotFileParser:
        """
        Parse robots.txt content into a RobotFileParser.

        Args:
            content: robots.txt content
            robots_url: URL the content was fetched from

        Returns:
            Parsed RobotFileParser
        """
        parser = RobotFileParser()
        parser.set_url(robots_url)
        parser.parse(content.splitlines())
        return parser

    def is_allowed(self, url: str) -> bool:
        """
        Check if a URL is allowed by the cached robots.txt rules.

        Args:
            url: Absolute URL to check

        Returns:
            True if allowed or the host's rules are unknown
        """
        self.stats["checks_performed"] += 1
        parser = self._parsers.get(_host_key(url))

        if parser is None:
            self.stats["urls_allowed"] += 1
            return True

        try:
            allowed = parser.can_fetch(self.user_agent, url)
        except Exception as e:
            logger.error(f"Error checking robots.txt permission for {url}: {e}")
            allowed = True

        if allowed:
            self.stats["urls_allowed"] += 1
        else:
            self.stats["urls_blocked"] += 1
            logger.debug(f"URL {url} blocked by robots.txt for user agent {self.user_agent}")
        return allowed

    def get_crawl_delay(self, url: str) -> Optional[float]:
        """Get the Crawl-delay for the host of ``url``, if one was declared"""
        parser = self._parsers.get(_host_key(url))
        if parser is None:
            return None
        delay = parser.crawl_delay(self.user_agent)
        return float(delay) if delay is not None else None

    def get_stats(self) -> Dict[str, Any]:
        """Get robots checker statistics"""
        stats: Dict[str, Any] = dict(self.stats)
        if stats["checks_performed"] > 0:
            stats["block_rate"] = stats["urls_blocked"] / stats["checks_performed"]
        else:
            stats["block_rate"] = 0.0
        stats["hosts_cached"] = len(self._parsers)
        return stats


class AllowAllRobots:
    """Robots gate that allows every URL"""

    async def load(self, url: str) -> None:
        return None

    def is_allowed(self, url: str) -> bool:
        return True

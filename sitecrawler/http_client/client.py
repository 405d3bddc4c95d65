"""
HTTP client for the site crawler.

Implements the Fetcher contract on top of aiohttp. Any HTTP status is returned as a
FetchResponse; only transport failures raise.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientError, ClientTimeout, TCPConnector

from ..config.settings import CrawlerSettings, get_cached_settings
from ..core.cancellation import CancelSignal, CrawlCancelledError
from ..core.exceptions import ContentTooLargeError, FetchConnectionError, FetchTimeoutError
from ..core.types import FetchResponse
from .parser import decode_content

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en,*;q=0.5",
    "Accept-Encoding": "gzip, deflate",
}


class CrawlerHTTPClient:
    """
    aiohttp-backed fetcher with a shared session, size limits and request statistics.
    """

    def __init__(self, settings: Optional[CrawlerSettings] = None, max_connections: Optional[int] = None):
        """
        Initialize the HTTP client.

        Args:
            settings: Optional crawler settings (uses cached settings if None)
            max_connections: Connection pool size (defaults to max_concurrent_requests)
        """
        self.settings = settings or get_cached_settings()
        self.max_content_length = self.settings.max_content_length
        self.max_connections = max(1, max_connections or self.settings.max_concurrent_requests)

        # Session is created lazily inside the running event loop
        self._session: Optional[aiohttp.ClientSession] = None

        self.stats = {
            "requests_made": 0,
            "requests_successful": 0,
            "requests_failed": 0,
            "timeouts": 0,
            "bytes_downloaded": 0,
            "total_response_time": 0.0,
        }

        logger.debug(f"Initialized HTTP client with max_connections={self.max_connections}")

    async def __aenter__(self) -> "CrawlerHTTPClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client and clean up resources"""
        if self._session:
            await self._session.close()
            self._session = None
            logger.debug("HTTP client closed")

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure HTTP session is created and valid"""
        if self._session is None or self._session.closed:
            connector = TCPConnector(
                limit=self.max_connections,
                ttl_dns_cache=300,
                use_dns_cache=True,
                keepalive_timeout=30,
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                headers=DEFAULT_HEADERS,
                raise_for_status=False,  # Status codes are reported, not raised
            )
            logger.debug("Created new HTTP session")

        return self._session

    async def fetch(
        self, url: str, user_agent: str, timeout: float, cancel: Optional[CancelSignal] = None
    ) -> FetchResponse:
        """
        Fetch a single URL.

        Args:
            url: Absolute URL to fetch
            user_agent: User-Agent header value
            timeout: Total request timeout in seconds
            cancel: Optional cancellation signal checked before the request starts

        Returns:
            FetchResponse for any HTTP status

        Raises:
            FetchTimeoutError: If the request times out
            FetchConnectionError: On DNS, connection or protocol failures
            ContentTooLargeError: If the body exceeds max_content_length
            CrawlCancelledError: If cancel is already set
        """
        if cancel is not None and cancel.is_cancelled:
            raise CrawlCancelledError(cancel.reason or "crawl cancelled")

        session = await self._ensure_session()
        start_time = time.monotonic()
        self.stats["requests_made"] += 1

        try:
            async with session.get(
                url,
                headers={"User-Agent": user_agent},
                timeout=ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as response:
                content = await self._read_content_safely(response, url)
                content_type = response.headers.get("content-type", "")
                final_url = str(response.url)
                status_code = response.status

        except (asyncio.TimeoutError, TimeoutError) as e:
            self.stats["requests_failed"] += 1
            self.stats["timeouts"] += 1
            logger.info(f"Timeout fetching {url}", extra={"url": url, "timeout": timeout})
            raise FetchTimeoutError(url, timeout, e) from e

        except ContentTooLargeError:
            self.stats["requests_failed"] += 1
            raise

        except ClientError as e:
            self.stats["requests_failed"] += 1
            logger.info(f"HTTP request failed for {url}: {e}", extra={"url": url})
            raise FetchConnectionError(f"HTTP request failed: {str(e)}", url, e) from e

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        self.stats["requests_successful"] += 1
        self.stats["total_response_time"] += elapsed_ms / 1000
        self.stats["bytes_downloaded"] += len(content)

        logger.debug(
            f"Fetched {url}",
            extra={
                "url": url,
                "status_code": status_code,
                "response_time_ms": elapsed_ms,
                "content_length": len(content),
            },
        )

        return FetchResponse(
            status_code=status_code,
            body=decode_content(content, content_type),
            elapsed_ms=elapsed_ms,
            content_type=content_type or None,
            final_url=final_url,
        )

    async def _read_content_safely(self, response: aiohttp.ClientResponse, url: str) -> bytes:
        """Read response content with size limits"""
        content_length = response.headers.get("content-length")
        if content_length:
            try:
                length = int(content_length)
            except ValueError:
                length = 0  # Invalid content-length header, continue
            if length > self.max_content_length:
                raise ContentTooLargeError(url, length, self.max_content_length)

        content = bytearray()
        chunk_size = 8192

        async for chunk in response.content.iter_chunked(chunk_size):
            content.extend(chunk)
            if len(content) > self.max_content_length:
                raise ContentTooLargeError(url, len(content), self.max_content_length)

        return bytes(content)

    def get_stats(self) -> Dict[str, Any]:
        """Get HTTP client statistics"""
        stats: Dict[str, Any] = dict(self.stats)

        if stats["requests_made"] > 0:
            stats["success_rate"] = stats["requests_successful"] / stats["requests_made"]
            stats["average_response_time"] = (
                stats["total_response_time"] / stats["requests_successful"] if stats["requests_successful"] > 0 else 0
            )
        else:
            stats["success_rate"] = 0
            stats["average_response_time"] = 0

        stats["session_active"] = self._session is not None and not self._session.closed
        return stats

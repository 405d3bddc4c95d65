"""
Logging utilities for the site crawler.

Provides structured logging with JSON or console output.
"""

import logging
import sys
from typing import Any, Optional

import structlog


def setup_crawler_logger(name: str, level: str = "INFO", json_logs: bool = True) -> structlog.stdlib.BoundLogger:
    """
    Set up structured logging for the crawler.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Whether to output JSON format logs

    Returns:
        Configured structlog logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )

    if json_logs:
        processors = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger(name)


def get_crawler_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return structlog.get_logger(name)


class CrawlerLoggerAdapter:
    """
    Logger adapter that adds crawl run context to all log messages.
    """

    def __init__(self, logger: Any, crawl_id: str):
        self.logger = logger.bind(crawl_id=crawl_id)
        self.crawl_id = crawl_id

    def log_crawl_started(self, seed_url: str, domain: str, **kwargs: Any) -> None:
        """Log crawl start event"""
        self.logger.info("crawl_started", seed_url=seed_url, domain=domain, **kwargs)

    def log_page_completed(
        self, url: str, depth: int, status_code: int, elapsed_ms: int, links_found: int, **kwargs: Any
    ) -> None:
        """Log page completion event"""
        self.logger.debug(
            "page_completed",
            url=url,
            depth=depth,
            status_code=status_code,
            elapsed_ms=elapsed_ms,
            links_found=links_found,
            **kwargs,
        )

    def log_page_failed(
        self, url: str, depth: int, error_type: str, error_message: str, status_code: Optional[int] = None, **kwargs: Any
    ) -> None:
        """Log page failure event"""
        self.logger.warning(
            "page_failed",
            url=url,
            depth=depth,
            error_type=error_type,
            error_message=error_message,
            status_code=status_code,
            **kwargs,
        )

    def log_crawl_completed(self, seed_url: str, pages: int, failed: int, elapsed_ms: int, **kwargs: Any) -> None:
        """Log crawl completion event"""
        self.logger.info(
            "crawl_completed", seed_url=seed_url, pages=pages, failed=failed, elapsed_ms=elapsed_ms, **kwargs
        )

    def log_crawl_cancelled(self, seed_url: str, pages: int, reason: Optional[str] = None, **kwargs: Any) -> None:
        """Log crawl cancellation event"""
        self.logger.warning("crawl_cancelled", seed_url=seed_url, pages=pages, reason=reason, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.logger.error(message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.logger.debug(message, **kwargs)

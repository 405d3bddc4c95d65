"""
Crawl worker components.
"""

from .error_handler import CrawlErrorHandler, ErrorClassification
from .pool import PoolStats, WorkerPool
from .processor import PageProcessor

__all__ = [
    "CrawlErrorHandler",
    "ErrorClassification",
    "PageProcessor",
    "PoolStats",
    "WorkerPool",
]

from .crawl_coordinator import CrawlCoordinator, crawl, resolve_options

__all__ = ["CrawlCoordinator", "crawl", "resolve_options"]

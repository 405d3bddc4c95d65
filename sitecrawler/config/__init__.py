from .settings import CrawlerSettings, get_cached_settings, load_settings, reset_settings_cache
from .validator import CrawlRequestValidator, validate_crawl_request

__all__ = [
    "CrawlRequestValidator",
    "CrawlerSettings",
    "get_cached_settings",
    "load_settings",
    "reset_settings_cache",
    "validate_crawl_request",
]

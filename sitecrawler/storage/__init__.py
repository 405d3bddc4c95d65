from .results import CrawlReport, ResultAggregator, generate_sitemap_xml

__all__ = ["CrawlReport", "ResultAggregator", "generate_sitemap_xml"]

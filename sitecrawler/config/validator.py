"""
Crawl request validation.

Checks the seed URL and crawl options before anything is fetched.
"""

import logging
from typing import List

from ..core.exceptions import CrawlConfigurationError
from ..core.types import CrawlOptions
from ..utils.url import is_valid_url

logger = logging.getLogger(__name__)


class CrawlRequestValidator:
    """
    Validates a seed URL together with its crawl options.

    Every problem found is collected and reported in one CrawlConfigurationError.
    """

    def __init__(self, seed_url: str, options: CrawlOptions):
        self.seed_url = seed_url
        self.options = options
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate(self) -> None:
        """
        Run all validation checks.

        Raises:
            CrawlConfigurationError: If any check fails
        """
        self._validate_seed_url()
        self._validate_options()

        if self.errors:
            raise CrawlConfigurationError(self.errors)

        for warning in self.warnings:
            logger.warning(warning, extra={"seed_url": self.seed_url})

    def _validate_seed_url(self) -> None:
        if not isinstance(self.seed_url, str) or not self.seed_url.strip():
            self.errors.append("seed_url is required")
        elif not is_valid_url(self.seed_url.strip()):
            self.errors.append(f"seed_url must be an absolute http(s) URL: {self.seed_url!r}")

    def _validate_options(self) -> None:
        options = self.options

        if options.max_pages <= 0:
            self.errors.append("max_pages must be positive")

        if options.max_depth <= 0:
            self.errors.append("max_depth must be positive")

        if options.max_concurrent_requests <= 0:
            self.errors.append("max_concurrent_requests must be positive")

        if options.timeout_seconds <= 0:
            self.errors.append("timeout_seconds must be positive")

        if options.request_delay_ms < 0:
            self.errors.append("request_delay_ms cannot be negative")

        if not options.user_agent.strip():
            self.errors.append("user_agent must not be empty")

        if options.max_concurrent_requests > options.max_pages > 0:
            self.warnings.append(
                f"max_concurrent_requests ({options.max_concurrent_requests}) exceeds max_pages "
                f"({options.max_pages}); extra workers will stay idle"
            )


def validate_crawl_request(seed_url: str, options: CrawlOptions) -> None:
    """Validate a crawl request, raising CrawlConfigurationError on failure"""
    CrawlRequestValidator(seed_url, options).validate()

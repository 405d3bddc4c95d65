"""
Configuration management for the site crawler.

Uses pydantic-settings to load configuration from environment variables
and YAML files with proper validation.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.types import CrawlOptions


class CrawlerSettings(BaseSettings):
    """
    Settings loaded from environment variables (CRAWLER_*), .env and YAML files.

    Crawl bounds are range-checked by CrawlRequestValidator when a crawl starts.
    """

    model_config = SettingsConfigDict(
        env_prefix="CRAWLER_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Crawl bounds
    max_pages: int = Field(100, description="Maximum number of pages accepted per run")
    max_depth: int = Field(3, description="Maximum link depth from the seed")
    max_concurrent_requests: int = Field(4, description="Number of concurrent workers")

    # Politeness
    request_delay_ms: int = Field(1000, description="Delay between requests issued by one worker")
    respect_robots_txt: bool = Field(True)
    user_agent: str = Field("SiteCrawler/1.0")

    # Domain policy
    follow_external_links: bool = Field(False)

    # HTTP Configuration
    timeout_seconds: int = Field(30, description="Per-page processing timeout")
    max_content_length: int = Field(10 * 1024 * 1024, ge=1024)  # 10MB

    # Progress reporting
    progress_queue_size: int = Field(1000, ge=1)
    progress_shutdown_grace_seconds: float = Field(2.0, ge=0.0)

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    json_logs: bool = Field(False, description="Whether to output JSON format logs")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    def to_crawl_options(self) -> CrawlOptions:
        """Convert to CrawlOptions instance"""
        return CrawlOptions(
            max_pages=self.max_pages,
            max_depth=self.max_depth,
            request_delay_ms=self.request_delay_ms,
            respect_robots_txt=self.respect_robots_txt,
            user_agent=self.user_agent,
            follow_external_links=self.follow_external_links,
            max_concurrent_requests=self.max_concurrent_requests,
            timeout_seconds=self.timeout_seconds,
        )


def _expand_env_variables(obj: Any) -> Any:
    """Recursively expand environment variables in configuration values."""
    if isinstance(obj, str):
        # Match ${VAR_NAME} or ${VAR_NAME:default_value} patterns
        def replace_env_var(match):
            var_with_default = match.group(1)
            if ":" in var_with_default:
                var_name, default_value = var_with_default.split(":", 1)
                return os.getenv(var_name, default_value)
            return os.getenv(var_with_default, match.group(0))

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, obj)
    elif isinstance(obj, dict):
        return {key: _expand_env_variables(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_variables(item) for item in obj]
    else:
        return obj


def load_config_from_yaml(file_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML file with environment variable expansion.

    Args:
        file_path: Path to YAML configuration file

    Returns:
        Dictionary containing configuration values with env vars expanded

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        yaml.YAMLError: If YAML file is malformed
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Configuration file must contain a mapping: {file_path}")

    # Allow both a flat mapping and one nested under "crawler:"
    if isinstance(config.get("crawler"), dict):
        config = config["crawler"]
    return _expand_env_variables(config)


def load_settings(config_file: Optional[Path] = None, **overrides: Any) -> CrawlerSettings:
    """
    Load crawler settings from environment variables and an optional YAML file.

    Values from the YAML file take precedence over environment variables, and
    keyword overrides take precedence over both. Overrides whose value is None
    are ignored, so unset CLI flags fall through to the lower layers.

    Args:
        config_file: Path to configuration file. If None, CRAWLER_CONFIG_FILE is consulted
        **overrides: Additional configuration overrides

    Returns:
        Configured CrawlerSettings instance

    Raises:
        pydantic.ValidationError: If a value cannot be parsed
        FileNotFoundError: If the configuration file is missing
    """
    if config_file is None and os.getenv("CRAWLER_CONFIG_FILE"):
        config_file = Path(os.environ["CRAWLER_CONFIG_FILE"])

    config_data: Dict[str, Any] = {}
    if config_file:
        config_data = load_config_from_yaml(Path(config_file))

    config_data.update({key: value for key, value in overrides.items() if value is not None})

    return CrawlerSettings(**config_data)


# Global settings instance (lazy-loaded)
_settings: Optional[CrawlerSettings] = None


def get_cached_settings() -> CrawlerSettings:
    """
    Get cached settings instance.

    Returns:
        Cached CrawlerSettings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings_cache() -> None:
    """Reset the cached settings instance (useful for testing)"""
    global _settings
    _settings = None

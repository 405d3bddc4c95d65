"""
URL utilities for the site crawler.

Provides URL normalization, validation, resolution and domain extraction.
"""

from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse

from pydantic import HttpUrl, TypeAdapter, ValidationError

_HTTP_URL = TypeAdapter(HttpUrl)

# Links whose target is clearly not an HTML page
NON_CRAWLABLE_EXTENSIONS = frozenset(
    {
        # Images
        ".png",
        ".jpg",
        ".jpeg",
        ".gif",
        ".bmp",
        ".svg",
        ".ico",
        ".webp",
        # Documents
        ".pdf",
        ".doc",
        ".docx",
        ".xls",
        ".xlsx",
        ".ppt",
        ".pptx",
        ".csv",
        ".rtf",
        ".txt",
        # Media
        ".mp3",
        ".mp4",
        ".avi",
        ".mov",
        ".wmv",
        ".flv",
        ".wav",
        ".ogg",
        ".webm",
        # Archives
        ".zip",
        ".rar",
        ".tar",
        ".gz",
        ".7z",
        # Other
        ".xml",
        ".json",
        ".rss",
        ".css",
        ".js",
        ".woff",
        ".woff2",
        ".ttf",
        ".eot",
        ".exe",
        ".dmg",
    }
)

SYSTEM_PATHS = (
    "/cgi-bin/",
    "/cdn-cgi/",
    "/wp-admin/",
    "/wp-includes/",
    "/wp-content/plugins/",
    "/phpmyadmin/",
)


def normalize_url(url: str) -> str:
    """
    Normalize URL for deduplication.

    This function:
    - Lowercases scheme and host
    - Removes fragment (#) and query string (?)
    - Removes default ports (80, 443)
    - Uses "/" for an empty path and removes trailing slash elsewhere

    Args:
        url: Raw absolute URL string

    Returns:
        Normalized URL string

    Raises:
        ValueError: If URL is malformed or not http(s)
    """
    if not url or not url.strip():
        raise ValueError("URL must not be empty")

    try:
        parsed = urlparse(url.strip())
    except ValueError as e:
        raise ValueError(f"Invalid URL format: {e}") from e

    if not parsed.scheme:
        raise ValueError("URL must include scheme (http/https)")

    scheme = parsed.scheme.lower()
    if scheme not in ("http", "https"):
        raise ValueError(f"Unsupported scheme: {scheme}")

    netloc = parsed.netloc.lower()
    if netloc == "" or not parsed.hostname:
        raise ValueError("URL must include domain")

    if scheme == "http" and netloc.endswith(":80"):
        netloc = netloc[:-3]
    elif scheme == "https" and netloc.endswith(":443"):
        netloc = netloc[:-4]

    path = parsed.path
    if not path:
        path = "/"
    elif path != "/" and path.endswith("/"):
        path = path.rstrip("/") or "/"

    return urlunparse((scheme, netloc, path, parsed.params, "", ""))


def try_normalize_url(url: str) -> Optional[str]:
    """Normalize URL, returning None instead of raising for unusable input"""
    try:
        return normalize_url(url)
    except ValueError:
        return None


def extract_domain(url: str) -> str:
    """
    Extract domain from URL.

    Args:
        url: URL string

    Returns:
        Lowercased domain name (without port)

    Raises:
        ValueError: If URL is invalid or has no domain
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise ValueError(f"Cannot extract domain from URL '{url}': {e}") from e

    if not hostname:
        raise ValueError(f"Cannot extract domain from URL '{url}': URL has no domain")
    return hostname.lower()


def is_valid_url(url: str) -> bool:
    """
    Check if URL is valid for crawling.

    Args:
        url: URL string to validate

    Returns:
        True if URL is an absolute http(s) URL with a host
    """
    if not url or not isinstance(url, str):  # type: ignore
        return False

    try:
        _HTTP_URL.validate_python(url)
        parsed = urlparse(url)
    except (ValidationError, ValueError):
        return False

    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def resolve_relative_url(base_url: str, relative_url: str) -> str:
    """
    Resolve relative URL against base URL.

    Args:
        base_url: Base URL
        relative_url: Relative URL or absolute URL

    Returns:
        Absolute URL

    Raises:
        ValueError: If resolution fails or yields an invalid URL
    """
    try:
        resolved = urljoin(base_url, relative_url.strip())
    except ValueError as e:
        raise ValueError(f"Cannot resolve relative URL '{relative_url}' against '{base_url}': {e}") from e

    if not is_valid_url(resolved):
        raise ValueError(f"Resolved URL is invalid: {resolved}")
    return resolved


def is_crawlable_file_type(url: str) -> bool:
    """
    Check if URL points to a crawlable file type.

    Args:
        url: URL string

    Returns:
        False for known non-page extensions (images, media, archives, ...)
    """
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False

    last_segment = path.rsplit("/", 1)[-1]
    if "." not in last_segment:
        return True

    extension = "." + last_segment.rsplit(".", 1)[-1]
    return extension not in NON_CRAWLABLE_EXTENSIONS


def is_system_path(url: str) -> bool:
    """Check if URL points into a well-known admin or infrastructure path"""
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False

    # Match "/wp-admin" as well as "/wp-admin/..."
    path = path if path.endswith("/") else path + "/"
    return any(system_path in path for system_path in SYSTEM_PATHS)


def get_robots_txt_url(url: str) -> str:
    """
    Get the robots.txt URL for the host of ``url``.

    Args:
        url: Any absolute URL on the host

    Returns:
        robots.txt URL
    """
    parsed = urlparse(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}/robots.txt"

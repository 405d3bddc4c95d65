"""Tests for URL utilities."""

import pytest

from sitecrawler.utils.url import (
    extract_domain,
    get_robots_txt_url,
    is_crawlable_file_type,
    is_system_path,
    is_valid_url,
    normalize_url,
    resolve_relative_url,
    try_normalize_url,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("HTTPS://Example.COM", "https://example.com/"),
        ("https://example.com/About/", "https://example.com/About"),
        ("https://example.com/a?b=1#frag", "https://example.com/a"),
        ("http://example.com:80/x", "http://example.com/x"),
        ("https://example.com:443/", "https://example.com/"),
        ("https://example.com:8443/x", "https://example.com:8443/x"),
        ("  https://example.com/page  ", "https://example.com/page"),
    ],
)
def test_normalize_url(raw, expected):
    assert normalize_url(raw) == expected


def test_normalize_url_equivalent_forms_collapse():
    forms = [
        "https://example.com/docs",
        "https://EXAMPLE.com/docs/",
        "https://example.com/docs?page=2",
        "https://example.com/docs#top",
    ]
    assert len({normalize_url(form) for form in forms}) == 1


@pytest.mark.parametrize("raw", ["", "   ", "example.com/page", "ftp://example.com/", "mailto:a@example.com", "https://"])
def test_normalize_url_rejects_unusable(raw):
    with pytest.raises(ValueError):
        normalize_url(raw)
    assert try_normalize_url(raw) is None


def test_is_valid_url():
    assert is_valid_url("https://example.com/")
    assert is_valid_url("http://localhost:8080/a")
    assert not is_valid_url("not a url")
    assert not is_valid_url("/relative/path")
    assert not is_valid_url("javascript:void(0)")
    assert not is_valid_url("")


def test_extract_domain():
    assert extract_domain("https://Sub.Example.com:8080/x") == "sub.example.com"
    with pytest.raises(ValueError):
        extract_domain("/no/host")


def test_resolve_relative_url():
    assert resolve_relative_url("https://example.com/dir/page", "other") == "https://example.com/dir/other"
    assert resolve_relative_url("https://example.com/dir/page", "/root") == "https://example.com/root"
    assert resolve_relative_url("https://example.com/", "https://other.com/x") == "https://other.com/x"


@pytest.mark.parametrize(
    "url,crawlable",
    [
        ("https://example.com/", True),
        ("https://example.com/about", True),
        ("https://example.com/index.html", True),
        ("https://example.com/page.php", True),
        ("https://example.com/logo.PNG", False),
        ("https://example.com/report.pdf", False),
        ("https://example.com/static/app.js", False),
        ("https://example.com/archive.zip", False),
        ("https://example.com/v1.2/guide", True),
    ],
)
def test_is_crawlable_file_type(url, crawlable):
    assert is_crawlable_file_type(url) is crawlable


def test_is_system_path():
    assert is_system_path("https://example.com/wp-admin/options.php")
    assert is_system_path("https://example.com/wp-admin")
    assert is_system_path("https://example.com/cdn-cgi/l/email-protection")
    assert not is_system_path("https://example.com/blog/admin-tips")


def test_get_robots_txt_url():
    assert get_robots_txt_url("https://Example.com:8443/deep/page") == "https://example.com:8443/robots.txt"

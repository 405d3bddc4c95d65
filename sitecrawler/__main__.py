"""
CLI entry point for the site crawler.

Examples:
  python -m sitecrawler crawl https://example.com --max-pages 50 --max-depth 2
  python -m sitecrawler crawl https://example.com --json --sitemap sitemap.xml
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .config.settings import CrawlerSettings, load_settings
from .coordinator.crawl_coordinator import CrawlCoordinator
from .core.cancellation import CancelSignal
from .core.exceptions import CrawlConfigurationError
from .core.types import RunState
from .storage.results import CrawlReport
from .utils.logging import setup_crawler_logger

logger = logging.getLogger(__name__)


def _install_cancel_handlers(cancel: CancelSignal) -> None:
    """Route SIGINT/SIGTERM to the crawl's cancel signal"""
    loop = asyncio.get_running_loop()

    def request_cancel(sig: int) -> None:
        logger.info(f"Received signal {sig}, cancelling crawl...")
        cancel.cancel(f"signal {sig}")

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_cancel, sig)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on Windows event loops
            signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(request_cancel, signum))


def _print_report(report: CrawlReport, as_json: bool) -> None:
    if as_json:
        payload = {
            "crawl_id": report.crawl_id,
            "start_path": report.start_path,
            "state": report.state.value,
            "stats": report.stats.model_dump(mode="json"),
            "results": [
                result.model_dump(mode="json", exclude={"response_body"}) for result in report.results
            ],
        }
        print(json.dumps(payload, indent=2))
        return

    for result in report.results:
        line = str(result)
        if result.errors:
            line += f" Errors:{'; '.join(result.error_messages)}"
        print(line)

    stats = report.stats
    print(
        f"\n{report.state.value}: {stats.pages_crawled} pages "
        f"({stats.pages_succeeded} ok, {stats.pages_failed} failed) in {report.duration_seconds:.1f}s"
    )
    if stats.pages_by_depth:
        depths = ", ".join(f"depth {depth}: {count}" for depth, count in stats.pages_by_depth.items())
        print(f"Pages by depth: {depths}")


async def run_crawl(seed_url: str, settings: CrawlerSettings, as_json: bool, sitemap_file: Optional[Path]) -> int:
    """
    Run one crawl and print its results.

    Returns:
        Process exit code
    """
    cancel = CancelSignal()
    _install_cancel_handlers(cancel)

    coordinator = CrawlCoordinator(settings=settings)
    try:
        report = await coordinator.crawl_site(seed_url, settings.to_crawl_options(), cancel=cancel)
    except CrawlConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    _print_report(report, as_json)

    if sitemap_file is not None:
        sitemap = report.sitemap_xml()
        sitemap_file.write_text(sitemap, encoding="utf-8")
        logger.info(f"Wrote sitemap with {len(report.sitemap_urls())} URLs to {sitemap_file}")

    return 130 if report.state is RunState.CANCELLED else 0


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        prog="sitecrawler",
        description="Breadth-first single-site crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m sitecrawler crawl https://example.com
  python -m sitecrawler crawl https://example.com --max-pages 500 --concurrency 8 --delay-ms 250
  python -m sitecrawler crawl https://example.com --config crawler.yaml --sitemap sitemap.xml
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    crawl_parser = subparsers.add_parser("crawl", help="Crawl a site starting from a seed URL")
    crawl_parser.add_argument("seed_url", help="Absolute http(s) URL to start from")
    crawl_parser.add_argument("--config", "-c", type=Path, help="YAML configuration file")
    crawl_parser.add_argument("--max-pages", type=int, help="Maximum number of pages to crawl")
    crawl_parser.add_argument("--max-depth", type=int, help="Maximum link depth from the seed")
    crawl_parser.add_argument("--concurrency", type=int, help="Number of concurrent workers")
    crawl_parser.add_argument("--delay-ms", type=int, help="Delay between requests per worker")
    crawl_parser.add_argument("--timeout", type=int, help="Per-page timeout in seconds")
    crawl_parser.add_argument("--user-agent", help="User-Agent header")
    crawl_parser.add_argument(
        "--follow-external", action="store_true", default=None, help="Also crawl links to other hosts"
    )
    crawl_parser.add_argument(
        "--ignore-robots", action="store_true", default=False, help="Do not consult robots.txt"
    )
    crawl_parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level"
    )
    crawl_parser.add_argument("--json", action="store_true", help="Print results as JSON")
    crawl_parser.add_argument("--json-logs", action="store_true", default=None, help="Emit JSON log lines")
    crawl_parser.add_argument("--sitemap", type=Path, help="Write a sitemap.xml of pages that returned 200")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    overrides: Dict[str, Any] = {
        "max_pages": args.max_pages,
        "max_depth": args.max_depth,
        "max_concurrent_requests": args.concurrency,
        "request_delay_ms": args.delay_ms,
        "timeout_seconds": args.timeout,
        "user_agent": args.user_agent,
        "follow_external_links": args.follow_external,
        "log_level": args.log_level,
        "json_logs": args.json_logs,
    }
    if args.ignore_robots:
        overrides["respect_robots_txt"] = False

    try:
        settings = load_settings(config_file=args.config, **overrides)
    except (ValidationError, ValueError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_crawler_logger("sitecrawler", level=settings.log_level, json_logs=settings.json_logs)

    try:
        return asyncio.run(run_crawl(args.seed_url, settings, args.json, args.sitemap))
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())

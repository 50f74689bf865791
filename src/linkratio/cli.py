"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from linkratio.config import DEFAULT_BATCH_SIZE, DEFAULT_TIMEOUT_S, DEFAULT_USER_AGENT, ConfigError, CrawlConfig
from linkratio.core import crawl
from linkratio.log import EventLogger, configure_logging
from linkratio.models import PAGE_PROCESSED, ROUND_STARTED, CrawlEvent, CrawlStats
from linkratio.output import format_tsv, generate_output_path, write_tsv


def print_summary(stats: CrawlStats) -> None:
    """Print crawl summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("CRAWL SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Total pages crawled:    {stats.pages_crawled}\n")
    sys.stderr.write(f"Rounds:                 {stats.rounds}\n")
    sys.stderr.write(f"URLs scheduled:         {stats.urls_scheduled}\n")
    sys.stderr.write(f"Links discovered:       {stats.links_discovered}\n")
    sys.stderr.write(f"Tasks dispatched:       {stats.tasks_dispatched}\n")

    if stats.tasks_failed:
        sys.stderr.write(f"Failed tasks:           {stats.tasks_failed}\n")
    else:
        sys.stderr.write("No task failures.\n")

    sys.stderr.write("\n")


class ProgressPrinter:
    """Print one line per round and per page to stderr."""

    def __call__(self, event: CrawlEvent) -> None:
        if event.kind == ROUND_STARTED:
            sys.stderr.write(f"\n[depth {event.data['round']}] {event.data['urls']} URLs\n")
        elif event.kind == PAGE_PROCESSED:
            sys.stderr.write(f"  → {event.data['ratio']:.3f} {event.data['url']}\n")
        sys.stderr.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crawl same-domain links from a URL and report each page's same-domain link ratio as TSV."
    )
    parser.add_argument("root_url", help="Root URL (e.g. https://example.com)")
    parser.add_argument("max_depth", type=int, help="Maximum link depth from the root (0 = root only)")
    parser.add_argument(
        "--timeout", type=float, default=DEFAULT_TIMEOUT_S,
        help=f"Request timeout in seconds (default: {DEFAULT_TIMEOUT_S:g})",
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Parallel worker processes (default: CPUs - 1; 1 = single-process mode)",
    )
    parser.add_argument(
        "--batch-size", type=int, default=DEFAULT_BATCH_SIZE,
        help=f"Pages fetched together in single-process mode (default: {DEFAULT_BATCH_SIZE})",
    )
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--out", help="Output file path, or '-' for stdout (default: auto-generated in crawls/)")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the crawler CLI."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, json=args.log_json)

    config = CrawlConfig(
        root_url=args.root_url,
        max_depth=args.max_depth,
        timeout=args.timeout,
        workers=args.workers,
        batch_size=args.batch_size,
        user_agent=args.user_agent,
    )
    try:
        config.validate()
    except ConfigError as e:
        sys.stderr.write(f"Error: {e}\n")
        return 1

    subscribers = [EventLogger()]
    if args.verbose:
        subscribers.append(ProgressPrinter())
        sys.stderr.write(f"Starting crawl from: {config.root_url}\n")
        sys.stderr.write(f"Max depth: {config.max_depth}\n")

    def on_event(event: CrawlEvent) -> None:
        for subscriber in subscribers:
            subscriber(event)

    results, stats = crawl(config, on_event=on_event)

    if args.verbose:
        sys.stderr.write("\n")
        print_summary(stats)

    if args.out == "-":
        sys.stdout.write(format_tsv(results))
    else:
        output_path = Path(args.out) if args.out else generate_output_path(config.root_url)
        write_tsv(results, output_path)
        if args.verbose:
            sys.stderr.write(f"Results written to: {output_path}\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Command-line interface for the crawler."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

__all__ = ["main", "parse_args", "list_categories"]

from partcrawl.config import ALL_CATEGORIES, CATEGORY_TIMEOUT, OUTPUT_DIR, POOL_SIZE, get_variants
from partcrawl.errors import ConfigurationError
from partcrawl.logging_config import setup_logging
from partcrawl.mapping import load_mapping_table
from partcrawl.models import Category
from partcrawl.orchestrator import run
from partcrawl.shutdown import get_shutdown_handler
from partcrawl.sinks import SINK_FORMATS, create_sink

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2


def _category(value: str) -> Category:
    try:
        return Category.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="partcrawl",
        description="Crawl PC part listings category by category into typed records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Crawl every category with 5 concurrent sessions
  partcrawl

  # Crawl CPUs and memory only, writing CSV
  partcrawl cpu memory --format csv

  # Slower, more conservative run
  partcrawl --pool-size 2 --timeout 3600
        """,
    )

    parser.add_argument(
        "categories",
        nargs="*",
        type=_category,
        metavar="CATEGORY",
        help="Categories to crawl (default: all). See --list-categories.",
    )
    parser.add_argument(
        "--pool-size",
        type=int,
        default=POOL_SIZE,
        help=f"Number of categories crawled concurrently (default: {POOL_SIZE})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=CATEGORY_TIMEOUT,
        help=f"Maximum seconds per category (default: {CATEGORY_TIMEOUT:g})",
    )
    parser.add_argument(
        "--output-dir",
        default=OUTPUT_DIR,
        help=f"Directory for per-category output files (default: {OUTPUT_DIR})",
    )
    parser.add_argument(
        "--format",
        choices=list(SINK_FORMATS),
        default="json",
        help="Output file format (default: json)",
    )
    parser.add_argument(
        "--mapping",
        metavar="PATH",
        help="Custom mapping table JSON (default: bundled table)",
    )
    parser.add_argument(
        "--list-categories",
        action="store_true",
        help="List available categories and their variants, then exit",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Console log level (default: INFO)",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Don't write the JSONL event log",
    )

    args = parser.parse_args(argv)
    if args.pool_size < 1:
        parser.error("--pool-size must be at least 1")
    if args.timeout <= 0:
        parser.error("--timeout must be positive")
    return args


def list_categories() -> None:
    print("Available categories:")
    for category in ALL_CATEGORIES:
        variants = [name for name in get_variants(category) if name]
        suffix = f" ({len(variants)} variants: {', '.join(variants)})" if variants else ""
        print(f"  {category.value}{suffix}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI. Returns the process exit status."""
    args = parse_args(argv)

    if args.list_categories:
        list_categories()
        return EXIT_OK

    logger = setup_logging(
        level=getattr(logging, args.log_level),
        log_to_file=not args.no_log_file,
    )

    sink = create_sink(args.format, args.output_dir)
    shutdown = get_shutdown_handler().install()
    try:
        mapping = load_mapping_table(Path(args.mapping)) if args.mapping else None
        results = run(
            args.categories,
            sink,
            pool_size=args.pool_size,
            category_timeout=args.timeout,
            mapping=mapping,
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR
    finally:
        shutdown.uninstall()

    complete = sum(1 for r in results if r.complete)
    print(f"\n{complete}/{len(results)} categories complete")
    print(f"Output written to: {Path(args.output_dir) / args.format}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

# main.py

"""Entry point for the shopcompare command-line search."""

import argparse
import asyncio
import logging
import sys

from shopcompare.config.logging_config import setup_logging
from shopcompare.config.settings import Settings

logger = logging.getLogger("shopcompare.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(s["id"] for s in Settings.AVAILABLE_SOURCES)

    parser = argparse.ArgumentParser(
        prog="shopcompare",
        description="Multi-source product search and comparison.",
        epilog=f"Available sources: {valid_ids}",
    )
    parser.add_argument("query", help="Free-text shopping query.")
    parser.add_argument(
        "-s",
        "--sources",
        default=None,
        help="Comma-separated source IDs (default: all).",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        default=None,
        help="Comma-separated terms to exclude from results.",
    )
    parser.add_argument(
        "-p",
        "--priorities",
        default=None,
        help="Comma-separated priorities, e.g. value,quality,features.",
    )
    parser.add_argument(
        "-b",
        "--budget",
        default=None,
        help="Budget window as MIN-MAX, e.g. 100-400.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "-c",
        "--cache",
        choices=list(Settings.CACHE_BACKENDS),
        default=None,
        dest="cache_backend",
        help=(
            "Cache backend (default: CACHE_BACKEND env or redis). "
            "'memory' caches within this run only."
        ),
    )
    return parser


def main() -> None:
    """Parse arguments and run a headless search."""
    log_file = setup_logging()
    logger.info("shopcompare starting, log file: %s", log_file)

    args = _build_parser().parse_args()

    from shopcompare.cli.runner import cli_search

    exit_code = asyncio.run(
        cli_search(
            query=args.query,
            source_csv=args.sources,
            exclude_csv=args.exclude,
            priorities_csv=args.priorities,
            budget=args.budget,
            output_format=args.output_format,
            cache_backend=args.cache_backend,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

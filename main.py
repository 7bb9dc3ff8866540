# main.py

"""Entry point for the shopsmart search CLI."""

import argparse
import asyncio
import logging
import sys

from shopsmart.config.logging_config import setup_logging
from shopsmart.config.settings import Settings

logger = logging.getLogger("shopsmart.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(s["id"] for s in Settings.AVAILABLE_SOURCES)

    parser = argparse.ArgumentParser(
        prog="shopsmart",
        description=(
            "Search marketplaces live, with a local product cache "
            "as fallback."
        ),
        epilog=f"Available marketplaces: {valid_ids}",
    )
    parser.add_argument(
        "query",
        nargs="?",
        default=None,
        help="Search query.",
    )
    parser.add_argument(
        "-m",
        "--marketplace",
        default=Settings.DEFAULT_MARKETPLACE,
        help=f"Marketplace ID (default: {Settings.DEFAULT_MARKETPLACE}).",
    )
    parser.add_argument(
        "-p",
        "--page",
        type=int,
        default=1,
        help="Result page (default: 1).",
    )
    parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=Settings.DEFAULT_LIMIT,
        help=f"Maximum results (default: {Settings.DEFAULT_LIMIT}).",
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
        "--lookup",
        default=None,
        metavar="MARKETPLACE:ID",
        help="Show a cached product.",
    )
    parser.add_argument(
        "--refresh",
        default=None,
        metavar="MARKETPLACE:ID",
        help="Re-scrape a cached product and update the cache.",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a connectivity health check on all marketplaces.",
    )
    return parser


def _run_search(args: argparse.Namespace) -> None:
    """Run a search and exit."""
    from shopsmart.cli.runner import cli_search

    exit_code = asyncio.run(
        cli_search(
            query=args.query,
            marketplace=args.marketplace,
            page=args.page,
            limit=args.limit,
            output_format=args.output_format,
        )
    )
    sys.exit(exit_code)


def _run_product(ref: str, refresh: bool, output_format: str) -> None:
    """Look up or refresh one cached product and exit."""
    from shopsmart.cli.runner import cli_product

    exit_code = asyncio.run(cli_product(ref, refresh, output_format))
    sys.exit(exit_code)


def _run_health_check() -> None:
    """Run marketplace connectivity health check."""
    from shopsmart.cli.runner import run_health_check

    exit_code = asyncio.run(run_health_check())
    sys.exit(exit_code)


def main() -> None:
    """Route to search, product lookup or health check."""
    log_file = setup_logging()
    logger.info("shopsmart starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    try:
        if args.health:
            _run_health_check()
        elif args.refresh:
            _run_product(args.refresh, True, args.output_format)
        elif args.lookup:
            _run_product(args.lookup, False, args.output_format)
        elif args.query is None:
            parser.print_help(sys.stderr)
            sys.exit(2)
        else:
            _run_search(args)
    finally:
        logger.info("shopsmart shutting down")


if __name__ == "__main__":
    main()

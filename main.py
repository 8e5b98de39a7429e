# main.py

"""Entry point for the price_monitor CLI."""

import argparse
import logging
import sys
from pathlib import Path

from price_monitor.config.logging_config import setup_logging

logger = logging.getLogger("price_monitor.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="price_monitor",
        description=(
            "Competitor price tracking and margin analytics for "
            "marketplace listings."
        ),
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "--sweep",
        action="store_true",
        default=False,
        help="Scrape every monitored product once and record snapshots.",
    )
    action.add_argument(
        "--products",
        action="store_true",
        default=False,
        help="List products with latest snapshots and metrics.",
    )
    action.add_argument(
        "--dashboard",
        action="store_true",
        default=False,
        help="Show portfolio KPIs and the needs-action list (default).",
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
        "--db",
        default=None,
        dest="db_path",
        help="SQLite database path (default: data/price_monitor.db).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Echo INFO log records to stderr as well as the log file.",
    )
    return parser


def main() -> None:
    """Route to the sweep, product list or dashboard command."""
    args = _build_parser().parse_args()
    log_file = setup_logging(
        console_level=logging.INFO if args.verbose else logging.WARNING
    )
    logger.info("price_monitor starting, log file: %s", log_file)

    db_path = Path(args.db_path) if args.db_path else None

    from price_monitor.cli.runner import (
        run_sweep,
        show_dashboard,
        show_products,
    )

    try:
        if args.sweep:
            exit_code = run_sweep(db_path)
        elif args.products:
            exit_code = show_products(args.output_format, db_path)
        else:
            exit_code = show_dashboard(args.output_format, db_path)
    except Exception:
        logger.critical("Fatal error during CLI run", exc_info=True)
        raise
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

"""Command-line entry point: aggregate raw snapshots into the dashboard document.

Usage:
    revdash --raw-dir raw --output data.json
    python -m revdash.cli --log-level DEBUG
"""
from __future__ import annotations

import argparse
import logging
import sys

from revdash import config
from revdash.ingest.loader import LoadError, ValidationError
from revdash.service import run_aggregation

logger = logging.getLogger("revdash")


def setup_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=config.LOG_FORMAT,
        datefmt=config.LOG_DATE_FORMAT,
        stream=sys.stdout,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="revdash",
        description="Aggregate raw marketing, CRM and billing snapshots into one dashboard document.",
    )
    parser.add_argument("--raw-dir", default=config.RAW_DIR,
                        help="Directory holding the raw JSON snapshots (default: %(default)s)")
    parser.add_argument("--output", default=config.OUTPUT_PATH,
                        help="Path of the dashboard document to write (default: %(default)s)")
    parser.add_argument("--log-level", default=config.LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], type=str.upper)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        result = run_aggregation(raw_dir=args.raw_dir, output_path=args.output)
    except (LoadError, ValidationError) as exc:
        logger.critical("Aggregation failed: %s", exc.message, exc_info=True)
        for detail in exc.details:
            logger.error("  %s", detail)
        return 1

    if result.missing_sources:
        logger.warning("Ran without: %s", ", ".join(result.missing_sources))
    logger.info("Dashboard document ready at %s", result.output_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())

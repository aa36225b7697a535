"""
CLI entry point for the Donation Ledger service.

Runs one aggregation and writes the ledger as JSON for the site build.

Usage:
    python -m services.donation_ledger --output data/donate/donations.json
    python -m services.donation_ledger --sequential --log-format text
"""

import argparse
import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

import structlog

from . import __version__
from .aggregate import aggregate
from .client import DonationAPIError
from .log_config import configure_logging
from .models import DataShapeError, Donation
from .settings import ConfigurationError, DonationLedgerSettings, get_settings


logger = structlog.get_logger(__name__)

DEFAULT_OUTPUT = "donations.json"


def serialize_ledger(donations: Sequence[Donation]) -> str:
    """Render the ledger as pretty JSON with a trailing newline."""
    return json.dumps([donation.to_dict() for donation in donations], indent=2) + "\n"


def write_ledger(donations: Sequence[Donation], output: Path) -> None:
    """
    Replace the ledger file atomically.

    The JSON is written to a temporary file beside the target and renamed
    over it, so readers never see a partial ledger.
    """
    output.parent.mkdir(parents=True, exist_ok=True)
    content = serialize_ledger(donations)

    fd, temp_path = tempfile.mkstemp(dir=output.parent, prefix=f".{output.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(temp_path, output)
    except BaseException:
        Path(temp_path).unlink(missing_ok=True)
        raise


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Donation Ledger - aggregate donations into a JSON ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write the ledger for the site build
  ENVIRONMENT=production python -m services.donation_ledger --output data/donate/donations.json

  # Fetch platforms one after another with readable logs
  python -m services.donation_ledger --sequential --log-format text
        """
    )

    parser.add_argument(
        "--output",
        type=str,
        default=DEFAULT_OUTPUT,
        help=f"Output file for the ledger JSON (default: {DEFAULT_OUTPUT})"
    )

    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Fetch platforms one after another instead of concurrently"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from configuration"
    )

    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        help="Override log format from configuration"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Donation Ledger {__version__}"
    )

    return parser


async def run(config: DonationLedgerSettings, output: Path, sequential: bool = False) -> int:
    """
    Aggregate donations and write the ledger.

    Returns:
        Exit code (0 for success, 1 for failure); no file is written on failure
    """
    try:
        donations = await aggregate(config, concurrent=False if sequential else None)
    except (ConfigurationError, DonationAPIError, DataShapeError) as e:
        logger.error(
            "Donation ledger not written",
            error=str(e),
            error_type=type(e).__name__,
        )
        return 1

    write_ledger(donations, output)
    logger.info(
        "Donation ledger written",
        output=str(output),
        donations=len(donations),
    )
    return 0


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI application.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = get_settings()
    except ConfigurationError as e:
        configure_logging(args.log_level or "INFO", args.log_format or "json")
        logger.error("Invalid configuration", error=str(e))
        return 1

    configure_logging(
        args.log_level or config.log_level,
        args.log_format or config.log_format,
        service_name=config.service_name,
        environment=config.environment,
    )

    logger.info(
        "Service starting",
        service_name=config.service_name,
        version=__version__,
        environment=config.environment,
    )

    return await run(config, Path(args.output), sequential=args.sequential)


def cli_main() -> int:
    """Synchronous entry point for console scripts."""
    return asyncio.run(main())


if __name__ == "__main__":
    sys.exit(cli_main())

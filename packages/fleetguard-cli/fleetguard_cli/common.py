"""
Helpers shared by the command line scripts.
"""

import argparse
import logging
import sys
import traceback
from pathlib import Path
from typing import Optional, Sequence

from fleetguard.config import FleetguardConfig, load_config


def build_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.yaml (default: ~/.fleetguard/config.yaml)",
    )
    return parser


def configure_logging(config: FleetguardConfig) -> None:
    """Send library logs to stderr at the configured level."""
    level = getattr(logging, config.logging.level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def load_cli_config(description: str, argv: Optional[Sequence[str]] = None) -> FleetguardConfig:
    """Parse the common arguments, load configuration and set up logging."""
    args = build_parser(description).parse_args(argv)
    config = load_config(args.config)
    configure_logging(config)
    return config


def report_failure(title: str, error: BaseException) -> None:
    """Print a diagnostic line and the stack trace to stderr."""
    print(f"❌ {title}: {error}", file=sys.stderr)
    traceback.print_exception(type(error), error, error.__traceback__, file=sys.stderr)

"""Entry point for running TEC2MQTT as a module.

Usage:
    python -m tec2mqtt                         # Use env vars or defaults
    python -m tec2mqtt -c /path/to/config.yaml
    python -m tec2mqtt -p /dev/ttyUSB1 --demo 25.0
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from . import __version__
from .app import run_app, run_demo
from .config import create_default_config, print_env_help, get_config
from .exceptions import TECError

DEFAULT_CONFIG_PATHS = [
    "/etc/tec2mqtt/config.yaml",
    "/config/config.yaml",  # Docker default
    "config.yaml",
]


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="tec2mqtt",
        description="TC-720 thermoelectric cooler controller to MQTT bridge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Log-only mode on a given port:
  tec2mqtt -p /dev/ttyUSB0

  # Publish to a broker:
  MQTT_HOST=192.168.1.100 CONTROL_ENABLED=true tec2mqtt

  # One-shot demonstration: enable, set 25C, read back, disable:
  tec2mqtt -p /dev/ttyUSB0 --demo 25

  # Config file:
  tec2mqtt --generate-config > config.yaml
  tec2mqtt -c config.yaml
        """,
    )

    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (optional if using env vars)",
    )
    parser.add_argument(
        "-p", "--port",
        default=None,
        help="Serial port, overriding the configuration",
    )
    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--demo",
        type=float,
        metavar="TEMP",
        default=None,
        help="Set TEMP (degrees C) once, read the temperature back and exit",
    )
    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Print default configuration and exit",
    )
    parser.add_argument(
        "--env-help",
        action="store_true",
        help="Print environment variable help and exit",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = build_parser().parse_args(argv)

    if args.generate_config:
        print(create_default_config())
        return 0

    if args.env_help:
        print(print_env_help())
        return 0

    config_path = args.config
    if not config_path:
        config_path = next((p for p in DEFAULT_CONFIG_PATHS if Path(p).exists()), None)

    try:
        config = get_config(config_path)
    except (FileNotFoundError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.port:
        config.serial.port = args.port

    if config_path:
        print(f"Using configuration file: {config_path}")

    try:
        if args.demo is not None:
            actual = asyncio.run(run_demo(args.demo, config))
            print(f"Temperature: {actual:.2f} C")
        else:
            asyncio.run(run_app(config))
        return 0
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0
    except TECError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""Command-line argument parsing."""

from __future__ import annotations

import argparse
import os
from typing import Any, Dict, Optional, Sequence

from bridge_cli import __version__

CONFIG_ENV = "MESH_BRIDGE_CONFIG_FILE"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mesh-bridge",
        description="Interactive terminal client for the Mesh Bridge.",
    )
    parser.add_argument("--host", help="Bridge host (default: localhost)")
    parser.add_argument("--port", type=int, help="Bridge port (default: 9999)")
    parser.add_argument(
        "-m",
        "--monitor",
        action="store_true",
        default=None,
        help="Start with monitor mode enabled",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Minimum log level (default: WARNING)",
    )
    parser.add_argument("--log-file", help="Write logs to this file instead of the terminal")
    parser.add_argument("--config", help="Path to a YAML or JSON settings file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map parsed flags onto ``ClientSettings`` fields; unset flags map to ``None``.

    ``--config`` is exported through the environment so the settings file
    source picks it up ahead of the default locations.
    """

    if args.config:
        os.environ[CONFIG_ENV] = args.config
    return {
        "host": args.host,
        "port": args.port,
        "monitor": args.monitor,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }

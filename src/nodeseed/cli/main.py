#!/usr/bin/env python3
"""
nodeseed CLI - manage the node's cryptographic identity.

Commands:
  nodeseed init     Load the identity, generating and storing a seed if needed
  nodeseed show     Show the stored identity
  nodeseed check    Re-derive the stored identity and run its self-checks
"""

from __future__ import annotations

import argparse
import sys

from ..core.exceptions import ConfigException
from ..core.logging import configure_logging
from .commands import COMMAND_MODULES
from .output import output_error


def app() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="nodeseed",
        description="Stable cryptographic identity for a node",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  nodeseed init                         Use the configured store (NODESEED_STORE_PATH)
  nodeseed init --store ./data --key id Use an explicit location and key
  nodeseed show --store ./data          Print node id and public key
  nodeseed check                        Self-check the identity; exit 1 if no valid seed is stored
        """,
    )
    parser.add_argument("--log-level", help="Override NODESEED_LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for module in COMMAND_MODULES:
        module.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = app()
    args = parser.parse_args(argv)
    try:
        configure_logging(level=args.log_level, json_format=False)
        return args.func(args)
    except ConfigException as e:
        output_error(e.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())

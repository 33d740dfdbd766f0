# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Nodeseed Contributors

"""Output formatting for CLI commands."""

from __future__ import annotations

import json
import sys
from typing import Any


def output_result(data: dict[str, Any]) -> None:
    """Pretty-print a command result as JSON on stdout."""
    print(json.dumps(data, indent=2, default=str))


def output_error(message: str) -> None:
    """Print error message to stderr."""
    print(f"Error: {message}", file=sys.stderr)

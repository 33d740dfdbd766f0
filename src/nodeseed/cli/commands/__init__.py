"""CLI command modules for nodeseed.

Each module exposes a ``register(subparsers)`` function that wires up
its argparse sub-commands and sets ``parser.set_defaults(func=handler)``.
"""

from . import identity
from .identity import cmd_check, cmd_init, cmd_show

# All command modules with register() functions, in registration order.
COMMAND_MODULES = [
    identity,
]

__all__ = [
    "COMMAND_MODULES",
    "cmd_check",
    "cmd_init",
    "cmd_show",
]

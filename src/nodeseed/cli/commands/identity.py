"""Identity commands: provision, show and self-check the node identity.

Commands:
    nodeseed init [--store PATH] [--key KEY] [--no-persist]
    nodeseed show [--store PATH] [--key KEY]
    nodeseed check [--store PATH] [--key KEY]
"""

from __future__ import annotations

import argparse
import asyncio

from ...core.config import get_config
from ...identity.bootstrap import BootstrapResult
from ...identity.node_identity import NodeIdentity, derive
from ...identity.resolver import LookupStatus, SeedResolver
from ...identity.service import IdentityService
from ...identity.types import Seed
from ..output import output_error, output_result


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the identity commands."""
    init_p = subparsers.add_parser("init", help="Load the node identity, generating and storing a seed if needed")
    _add_store_args(init_p)
    init_p.add_argument(
        "--no-persist",
        action="store_true",
        help="Do not write a newly generated seed back to the store",
    )
    init_p.set_defaults(func=cmd_init)

    show_p = subparsers.add_parser("show", help="Show the stored node identity without generating one")
    _add_store_args(show_p)
    show_p.set_defaults(func=cmd_show)

    check_p = subparsers.add_parser(
        "check",
        help="Re-derive the stored identity and self-check it (fails only without a valid stored seed)",
    )
    _add_store_args(check_p)
    check_p.set_defaults(func=cmd_check)


def _add_store_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--store", "-s", help="Storage location (directory or memory://name)")
    parser.add_argument("--key", "-k", help="Key the seed is stored under")


def _location_and_key(args: argparse.Namespace) -> tuple[str, bytes]:
    config = get_config()
    location = args.store or config.resolved_store_path
    key = args.key.encode("utf-8") if args.key else config.seed_key_bytes
    return location, key


def _load_stored(args: argparse.Namespace) -> NodeIdentity | None:
    """Resolve the stored identity, reporting why it is unavailable."""
    location, key = _location_and_key(args)
    resolver = SeedResolver(timeout=get_config().lookup_timeout)
    lookup = asyncio.run(resolver.resolve(location, key))

    if lookup.status is LookupStatus.STORAGE_ERROR:
        output_error(f"Could not read {location}: {lookup.error}")
        return None
    if lookup.status is LookupStatus.NOT_FOUND:
        output_error(f"No seed stored at {location} (run 'nodeseed init')")
        return None
    if len(lookup.value) != Seed.SIZE:
        output_error(f"Stored seed at {location} is {len(lookup.value)} bytes, expected {Seed.SIZE}")
        return None
    return derive(lookup.value)


def cmd_init(args: argparse.Namespace) -> int:
    """Provision the node identity."""
    location, key = _location_and_key(args)
    config = get_config()
    service = IdentityService(
        timeout=config.lookup_timeout,
        persist=config.persist_generated and not args.no_persist,
    )
    result: BootstrapResult = asyncio.run(service.provision(location, key))
    output_result({"location": location, **result.to_dict()})
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Show the stored identity."""
    identity = _load_stored(args)
    if identity is None:
        return 1
    output_result(identity.to_dict())
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Re-derive the stored identity and report its self-checks.

    The identity is rebuilt from the seed, so the checks cannot fail here;
    the exit status is 1 only when no valid seed could be loaded.
    """
    identity = _load_stored(args)
    if identity is None:
        return 1
    key_ok = identity.check_key()
    node_id = identity.get_node_id()
    output_result(
        {
            "node_id": node_id.hex(),
            "key_consistent": key_ok,
        }
    )
    return 0 if key_ok else 1

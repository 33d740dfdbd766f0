#!/usr/bin/env python3
"""Example 01: Bootstrap a node identity.

This example demonstrates the startup workflow:
1. Provisioning an identity in a fresh store (a seed is generated and saved)
2. Provisioning again (the saved seed is recovered, same node id)
3. Running the verification checks on the recovered identity

Requirements:
    - `pip install -e .` from the repository root

Usage:
    python examples/01_bootstrap_identity.py [STORE_DIR]
"""

from __future__ import annotations

import asyncio
import sys
import tempfile

from nodeseed.core.logging import configure_logging
from nodeseed.identity import IdentityService


async def run(store: str) -> None:
    service = IdentityService()

    first = await service.provision(store, b"seed")
    print(f"first run:  {first.path.value:<9} node_id={first.identity.node_id.hex()}")

    second = await service.provision(store, b"seed")
    print(f"second run: {second.path.value:<9} node_id={second.identity.node_id.hex()}")

    identity = second.identity
    print(f"check_key:  {identity.check_key()}")
    print(f"node id ok: {identity.get_node_id() == identity.node_id}")


def main() -> None:
    configure_logging(level="WARNING", json_format=False)
    if len(sys.argv) > 1:
        asyncio.run(run(sys.argv[1]))
        return
    with tempfile.TemporaryDirectory() as store:
        asyncio.run(run(store))


if __name__ == "__main__":
    main()

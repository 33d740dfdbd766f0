# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Nodeseed Contributors

"""nodeseed - stable cryptographic identity for distributed-system nodes.

A node's identity is derived from a 32-byte seed: an Ed25519 keypair and a
20-byte node id, ``RIPEMD160(SHA3-256(public_key))``. At startup the seed is
recovered from the node's key-value store, or, if it is missing, unreadable
or malformed, a fresh one is generated (and written back by the
provisioning service).

Layout:
  identity/   derivation, seed resolver, bootstrapper, provisioning service
  storage/    async key-value backends (memory, local files)
  core/       configuration, logging, exceptions
  cli/        ``nodeseed`` command

CLI entry point: ``nodeseed``
"""

__version__ = "0.1.0"

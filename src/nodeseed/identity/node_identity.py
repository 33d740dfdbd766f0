# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Nodeseed Contributors

"""Node identity derivation.

A node identity is fully determined by a 32-byte seed:

1. ``(secret_key, public_key) = Ed25519 keygen(seed)``
2. ``digest = SHA3-256(public_key)``
3. ``node_id = RIPEMD160(digest)``

The secret key uses the 64-byte expanded layout (``seed || public_key``)
shared by NaCl and the Ed25519 reference implementation.

Ed25519 comes from ``cryptography``; RIPEMD-160 from ``pycryptodome``
because OpenSSL 3 builds of ``hashlib`` often ship without it.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from typing import Any

from Crypto.Hash import RIPEMD160
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ..core.exceptions import InvariantViolation
from .types import NodeId, PublicKey, SecretKey, Seed

logger = logging.getLogger(__name__)


def keypair(seed: Seed | bytes) -> tuple[SecretKey, PublicKey]:
    """Generate the Ed25519 keypair for a seed.

    Raises:
        ValueError: If ``seed`` is not exactly 32 bytes.
    """
    seed = Seed(seed)
    private_key = Ed25519PrivateKey.from_private_bytes(bytes(seed))
    public_key = PublicKey(private_key.public_key().public_bytes_raw())
    return SecretKey(bytes(seed) + public_key), public_key


def compute_node_id(public_key: PublicKey | bytes) -> NodeId:
    """Hash a public key into its node identifier (SHA3-256, then RIPEMD-160)."""
    digest = hashlib.sha3_256(bytes(public_key)).digest()
    return NodeId(RIPEMD160.new(digest).digest())


@dataclass(frozen=True)
class NodeIdentity:
    """Keypair and node identifier derived from a single seed.

    Build instances with :func:`derive` (or :meth:`from_seed`); the
    constructor only coerces field types and checks lengths.
    """

    seed: Seed = field(repr=False)
    secret_key: SecretKey = field(repr=False)
    public_key: PublicKey
    node_id: NodeId

    def __post_init__(self) -> None:
        object.__setattr__(self, "seed", Seed(self.seed))
        object.__setattr__(self, "secret_key", SecretKey(self.secret_key))
        object.__setattr__(self, "public_key", PublicKey(self.public_key))
        object.__setattr__(self, "node_id", NodeId(self.node_id))

    @classmethod
    def from_seed(cls, seed: Seed | bytes) -> NodeIdentity:
        """Derive an identity from a 32-byte seed."""
        return derive(seed)

    def get_node_id(self) -> NodeId:
        """Recompute the node id from the public key.

        Raises:
            InvariantViolation: If the recomputed id differs from the stored one.
        """
        recomputed = compute_node_id(self.public_key)
        if recomputed != self.node_id:
            logger.critical(
                "Node id mismatch: stored %s, recomputed %s",
                bytes(self.node_id).hex(),
                recomputed.hex(),
            )
            raise InvariantViolation(
                f"node id {bytes(self.node_id).hex()} does not match public key "
                f"(expected {recomputed.hex()})"
            )
        return recomputed

    def check_key(self) -> bool:
        """Check that the stored keypair is the one the seed generates.

        Returns:
            ``True`` if both keys match the regenerated pair byte for byte
            and have lengths 64 and 32, ``False`` otherwise.
        """
        if len(self.seed) != Seed.SIZE:
            return False
        if len(self.secret_key) != SecretKey.SIZE or len(self.public_key) != PublicKey.SIZE:
            return False
        secret_key, public_key = keypair(self.seed)
        return hmac.compare_digest(secret_key, self.secret_key) and hmac.compare_digest(
            public_key, self.public_key
        )

    def to_dict(self) -> dict[str, Any]:
        """Public view of the identity; secrets are never included."""
        return {
            "node_id": bytes(self.node_id).hex(),
            "public_key": bytes(self.public_key).hex(),
        }


def derive(seed: Seed | bytes) -> NodeIdentity:
    """Derive a :class:`NodeIdentity` from a seed.

    Pure and deterministic: the same seed always yields the same keys and
    node id.

    Raises:
        ValueError: If ``seed`` is not exactly 32 bytes.
        TypeError: If ``seed`` is not bytes-like.
    """
    seed = Seed(seed)
    secret_key, public_key = keypair(seed)
    return NodeIdentity(
        seed=seed,
        secret_key=secret_key,
        public_key=public_key,
        node_id=compute_node_id(public_key),
    )

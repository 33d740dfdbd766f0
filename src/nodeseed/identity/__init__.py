"""Node identity: deterministic keypair and node id from a 32-byte seed.

Key concepts:
- **NodeIdentity**: seed, Ed25519 keypair and the 20-byte node id
  ``RIPEMD160(SHA3-256(public_key))``.
- **SeedResolver**: one async point read against the seed store.
- **IdentityBootstrapper**: recover the stored identity or generate a new one.
- **IdentityService**: bootstrap plus write-back of generated seeds.
"""

from nodeseed.identity.bootstrap import (
    BootstrapPath,
    BootstrapResult,
    FallbackReason,
    IdentityBootstrapper,
    bootstrap,
)
from nodeseed.identity.node_identity import (
    NodeIdentity,
    compute_node_id,
    derive,
    keypair,
)
from nodeseed.identity.resolver import LookupStatus, SeedLookup, SeedResolver
from nodeseed.identity.service import IdentityService
from nodeseed.identity.types import NodeId, PublicKey, SecretKey, Seed

__all__ = [
    "BootstrapPath",
    "BootstrapResult",
    "FallbackReason",
    "IdentityBootstrapper",
    "IdentityService",
    "LookupStatus",
    "NodeId",
    "NodeIdentity",
    "PublicKey",
    "SecretKey",
    "Seed",
    "SeedLookup",
    "SeedResolver",
    "bootstrap",
    "compute_node_id",
    "derive",
    "keypair",
]

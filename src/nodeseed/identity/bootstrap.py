# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Nodeseed Contributors

"""Identity bootstrap: recover the stored identity or mint a new one.

State machine (per call, nothing persisted):

- stored seed of exactly 32 bytes -> RECOVERED from that seed
- stored value of any other length -> GENERATED (MALFORMED_SEED)
- nothing stored                   -> GENERATED (NOT_FOUND)
- store unreadable / timed out     -> GENERATED (STORAGE_ERROR)

Bootstrapping never raises for a storage state; the node always gets an
identity. Callers that must not silently replace an unreadable identity
inspect :attr:`BootstrapResult.reason`. Nothing is written back here;
see :mod:`nodeseed.identity.service` for the persisting layer.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ..core.exceptions import MalformedSeedError
from ..core.logging import correlation_context
from .node_identity import NodeIdentity, derive
from .resolver import LookupStatus, SeedLookup, SeedResolver, encode_key
from .types import Seed

logger = logging.getLogger(__name__)

RandomSource = Callable[[int], bytes]


class BootstrapPath(StrEnum):
    """Which terminal state produced the identity."""

    RECOVERED = "recovered"
    GENERATED = "generated"


class FallbackReason(StrEnum):
    """Why a fresh identity was generated."""

    NOT_FOUND = "not_found"
    STORAGE_ERROR = "storage_error"
    MALFORMED_SEED = "malformed_seed"


@dataclass(frozen=True)
class BootstrapResult:
    """Identity together with how it was obtained."""

    identity: NodeIdentity
    path: BootstrapPath
    lookup: SeedLookup
    reason: FallbackReason | None = None
    persisted: bool = False

    @property
    def generated(self) -> bool:
        return self.path is BootstrapPath.GENERATED

    def to_dict(self) -> dict[str, Any]:
        """Public summary suitable for logs and CLI output."""
        return {
            **self.identity.to_dict(),
            "path": self.path.value,
            "reason": self.reason.value if self.reason else None,
            "persisted": self.persisted,
        }


class IdentityBootstrapper:
    """Recover-or-generate decision procedure.

    Args:
        resolver: Seed lookup; defaults to a :class:`SeedResolver` on the
            process-wide backend registry.
        random_source: Returns ``n`` cryptographically secure random bytes.
    """

    def __init__(
        self,
        resolver: SeedResolver | None = None,
        random_source: RandomSource = secrets.token_bytes,
    ):
        self.resolver = resolver or SeedResolver()
        self._random_source = random_source

    async def bootstrap(self, location: str, key: bytes | str) -> NodeIdentity:
        """Return the node identity for ``location``/``key``. Never fails on storage state."""
        result = await self.bootstrap_with_outcome(location, key)
        return result.identity

    async def bootstrap_with_outcome(self, location: str, key: bytes | str) -> BootstrapResult:
        """Like :meth:`bootstrap`, but also report which path was taken and why."""
        key = encode_key(key)
        with correlation_context():
            lookup = await self.resolver.resolve(location, key)
            result = self._decide(lookup)
            extra = {"location": location, **result.to_dict()}
            if result.generated:
                logger.info(
                    f"Generated new node identity {extra['node_id']} ({result.reason.value})",
                    extra={"extra_data": extra},
                )
            else:
                logger.info(
                    f"Recovered node identity {extra['node_id']}",
                    extra={"extra_data": extra},
                )
            return result

    def _decide(self, lookup: SeedLookup) -> BootstrapResult:
        value = lookup.value
        if lookup.status is LookupStatus.FOUND and value is not None:
            if len(value) == Seed.SIZE:
                return BootstrapResult(
                    identity=derive(value),
                    path=BootstrapPath.RECOVERED,
                    lookup=lookup,
                )
            malformed = MalformedSeedError(
                f"Stored seed is {len(value)} bytes, expected {Seed.SIZE}",
                length=len(value),
            )
            logger.warning(f"Discarding stored seed: {malformed.message}")
            return self._generate(lookup, FallbackReason.MALFORMED_SEED)

        if lookup.status is LookupStatus.STORAGE_ERROR:
            return self._generate(lookup, FallbackReason.STORAGE_ERROR)
        return self._generate(lookup, FallbackReason.NOT_FOUND)

    def _generate(self, lookup: SeedLookup, reason: FallbackReason) -> BootstrapResult:
        seed = Seed(self._random_source(Seed.SIZE))
        return BootstrapResult(
            identity=derive(seed),
            path=BootstrapPath.GENERATED,
            lookup=lookup,
            reason=reason,
        )


async def bootstrap(
    location: str,
    key: bytes | str,
    *,
    resolver: SeedResolver | None = None,
) -> NodeIdentity:
    """Bootstrap a node identity with the default random source."""
    return await IdentityBootstrapper(resolver=resolver).bootstrap(location, key)

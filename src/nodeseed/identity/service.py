"""Provisioning service: bootstrap an identity and persist new seeds.

The bootstrapper never writes. This layer is the caller that does:

- serialises provisioning of the same ``(location, key)`` within the
  process with an :class:`asyncio.Lock`;
- writes a freshly generated seed back with a conditional write, so two
  processes racing on an empty store agree on one seed;
- overwrites a malformed stored seed, which the bootstrapper already
  discarded.

Usage::

    service = IdentityService.from_config()
    result = await service.provision_default()
    node_id = result.identity.node_id
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
import secrets
from collections.abc import AsyncIterator

from ..core.config import CoreSettings, get_config
from ..core.exceptions import StorageError
from ..core.logging import correlation_context
from ..storage.backend import open_backend
from .bootstrap import (
    BootstrapPath,
    BootstrapResult,
    FallbackReason,
    IdentityBootstrapper,
    RandomSource,
)
from .resolver import BackendOpener, SeedResolver, encode_key

logger = logging.getLogger(__name__)


class IdentityService:
    """Bootstrap node identities and persist the generated ones.

    Args:
        opener: Maps a location to a backend (default: process registry).
        timeout: Lookup timeout in seconds, ``None`` for no limit.
        persist: Write generated seeds back to the store.
        random_source: Override the random source (tests).
    """

    def __init__(
        self,
        opener: BackendOpener | None = None,
        timeout: float | None = None,
        persist: bool = True,
        random_source: RandomSource | None = None,
    ):
        self._opener = opener or open_backend
        self.persist = persist
        resolver = SeedResolver(opener=self._opener, timeout=timeout)
        self.bootstrapper = IdentityBootstrapper(
            resolver=resolver,
            random_source=random_source or secrets.token_bytes,
        )
        self._locks: dict[tuple[str, bytes], asyncio.Lock] = {}
        self._lock_users: dict[tuple[str, bytes], int] = {}
        self._config: CoreSettings | None = None

    @classmethod
    def from_config(cls, config: CoreSettings | None = None) -> IdentityService:
        """Build a service from :class:`CoreSettings`."""
        config = config or get_config()
        service = cls(timeout=config.lookup_timeout, persist=config.persist_generated)
        service._config = config
        return service

    @contextlib.asynccontextmanager
    async def _locked(self, location: str, key: bytes) -> AsyncIterator[None]:
        """Hold the per-``(location, key)`` lock; the entry is dropped with its last user."""
        slot = (location, key)
        lock = self._locks.setdefault(slot, asyncio.Lock())
        self._lock_users[slot] = self._lock_users.get(slot, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[slot] -= 1
            if not self._lock_users[slot]:
                del self._lock_users[slot]
                del self._locks[slot]

    async def provision(self, location: str, key: bytes | str) -> BootstrapResult:
        """Bootstrap the identity for ``location``/``key`` and persist it if new."""
        key = encode_key(key)
        async with self._locked(location, key):
            with correlation_context():
                result = await self.bootstrapper.bootstrap_with_outcome(location, key)
                if result.path is BootstrapPath.RECOVERED or not self.persist:
                    return result
                return await self._persist(location, key, result)

    async def provision_default(self) -> BootstrapResult:
        """Provision using the configured store path and seed key."""
        config = self._config or get_config()
        return await self.provision(config.resolved_store_path, config.seed_key_bytes)

    def _log_unpersisted(self, location: str, error: StorageError) -> None:
        logger.warning(
            f"Could not persist new seed at {location}, identity is ephemeral: {error}",
            extra={"extra_data": {"location": location, "error": error.to_dict()}},
        )

    async def _persist(self, location: str, key: bytes, result: BootstrapResult) -> BootstrapResult:
        seed = bytes(result.identity.seed)
        try:
            backend = self._opener(location)
            if result.reason is FallbackReason.MALFORMED_SEED:
                await backend.put(key, seed)
                written = True
            else:
                written = await backend.put_if_absent(key, seed)
        except StorageError as e:
            self._log_unpersisted(location, e)
            return result
        except Exception as e:
            # Third-party backends may raise their own error types
            error = StorageError(f"Write failed: {e}", location=location, key=key)
            error.__cause__ = e
            self._log_unpersisted(location, error)
            return result

        if written:
            logger.info(f"Persisted seed for node {result.identity.to_dict()['node_id']} at {location}")
            return dataclasses.replace(result, persisted=True)

        # Another writer stored a seed between our read and our write
        logger.info(f"Seed at {location} was written concurrently, adopting stored identity")
        winner = await self.bootstrapper.bootstrap_with_outcome(location, key)
        if winner.path is BootstrapPath.RECOVERED:
            return dataclasses.replace(winner, persisted=True)
        logger.warning(f"Stored seed at {location} could not be re-read ({winner.reason.value})")
        return result

"""Tests for IdentityService (bootstrap + write-back of generated seeds)."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import pytest

from nodeseed.core.config import CoreSettings
from nodeseed.core.exceptions import StorageError
from nodeseed.identity.bootstrap import BootstrapPath, FallbackReason
from nodeseed.identity.node_identity import derive
from nodeseed.identity.service import IdentityService
from nodeseed.storage.backend import MemoryBackend


class ReadOnlyBackend(MemoryBackend):
    async def put(self, key: bytes, value: bytes) -> None:
        raise StorageError("read-only", key=key)

    async def put_if_absent(self, key: bytes, value: bytes) -> bool:
        raise StorageError("read-only", key=key)


class DisconnectingBackend(MemoryBackend):
    """Raises a non-StorageError on write, like a remote client library would."""

    async def put_if_absent(self, key: bytes, value: bytes) -> bool:
        raise ConnectionError("remote store went away")


class RacingBackend(MemoryBackend):
    """Another writer stores a seed right after our lookup."""

    def __init__(self, winner: bytes):
        super().__init__()
        self.winner = winner

    async def get(self, key: bytes) -> bytes | None:
        value = await super().get(key)
        if value is None:
            self._storage[bytes(key)] = self.winner
        return value


class TestProvision:
    async def test_generates_and_persists(self, memory_backend: MemoryBackend, fixed_random):
        service = IdentityService(random_source=fixed_random(b"\x21" * 32))

        result = await service.provision("memory://test", b"seed")

        assert result.path is BootstrapPath.GENERATED
        assert result.persisted is True
        assert await memory_backend.get(b"seed") == b"\x21" * 32

    async def test_second_provision_recovers(self, tmp_path: Path):
        service = IdentityService()

        first = await service.provision(str(tmp_path), "seed")
        second = await IdentityService().provision(str(tmp_path), "seed")

        assert first.path is BootstrapPath.GENERATED
        assert second.path is BootstrapPath.RECOVERED
        assert first.identity == second.identity

    async def test_long_key_recovers_from_disk(self, tmp_path: Path):
        key = b"k" * 200

        first = await IdentityService().provision(str(tmp_path), key)
        second = await IdentityService().provision(str(tmp_path), key)

        assert first.persisted is True
        assert second.path is BootstrapPath.RECOVERED
        assert first.identity == second.identity

    async def test_recovered_not_rewritten(self, fixed_random):
        backend = ReadOnlyBackend()
        backend._storage[b"seed"] = b"\x33" * 32
        service = IdentityService(opener=lambda _: backend)

        result = await service.provision("ro", b"seed")

        assert result.path is BootstrapPath.RECOVERED
        assert result.persisted is False
        assert result.identity == derive(b"\x33" * 32)

    async def test_no_persist(self, memory_backend: MemoryBackend):
        result = await IdentityService(persist=False).provision("memory://test", b"seed")
        assert result.generated
        assert result.persisted is False
        assert await memory_backend.get(b"seed") is None

    async def test_malformed_seed_overwritten(self, memory_backend: MemoryBackend, fixed_random):
        await memory_backend.put(b"seed", b"\x01" * 12)

        result = await IdentityService(random_source=fixed_random(b"\x44" * 32)).provision("memory://test", b"seed")

        assert result.reason is FallbackReason.MALFORMED_SEED
        assert result.persisted is True
        assert await memory_backend.get(b"seed") == b"\x44" * 32

    async def test_write_failure_returns_ephemeral_identity(self):
        backend = ReadOnlyBackend()
        result = await IdentityService(opener=lambda _: backend).provision("ro", b"seed")

        assert result.generated
        assert result.persisted is False
        assert result.identity.check_key()

    async def test_foreign_write_error_returns_ephemeral_identity(self, caplog):
        backend = DisconnectingBackend()
        service = IdentityService(opener=lambda _: backend)

        with caplog.at_level(logging.WARNING, logger="nodeseed.identity.service"):
            result = await service.provision("memory://remote", b"seed")

        assert result.generated
        assert result.persisted is False
        assert result.identity.check_key()
        assert "remote store went away" in caplog.text

    async def test_opener_failure_returns_ephemeral_identity(self):
        def opener(location: str) -> MemoryBackend:
            raise RuntimeError("no driver for location")

        service = IdentityService(opener=opener)

        result = await service.provision("remote://x", b"seed")

        assert result.reason is FallbackReason.STORAGE_ERROR
        assert result.persisted is False

    async def test_lost_race_adopts_stored_seed(self, fixed_random):
        backend = RacingBackend(winner=b"\x77" * 32)
        service = IdentityService(opener=lambda _: backend, random_source=fixed_random(b"\x88" * 32))

        result = await service.provision("race", b"seed")

        assert result.path is BootstrapPath.RECOVERED
        assert result.persisted is True
        assert result.identity == derive(b"\x77" * 32)
        assert await backend.get(b"seed") == b"\x77" * 32

    async def test_concurrent_provisions_agree(self, memory_backend: MemoryBackend):
        service = IdentityService()

        results = await asyncio.gather(*(service.provision("memory://test", b"seed") for _ in range(5)))

        identities = {r.identity for r in results}
        assert len(identities) == 1
        assert sum(r.generated for r in results) == 1

    async def test_locks_released_after_provision(self, memory_backend: MemoryBackend):
        service = IdentityService()

        await asyncio.gather(*(service.provision("memory://test", b"seed") for _ in range(3)))
        await service.provision("memory://test", b"other")

        assert service._locks == {}
        assert service._lock_users == {}

    async def test_lock_released_when_provision_fails(self):
        class BrokenService(IdentityService):
            async def _persist(self, location, key, result):
                raise RuntimeError("boom")

        service = BrokenService(opener=lambda _: MemoryBackend())

        with pytest.raises(RuntimeError):
            await service.provision("mem", b"seed")

        assert service._locks == {}

    async def test_independent_keys(self, memory_backend: MemoryBackend):
        service = IdentityService()
        a = await service.provision("memory://test", b"node-a")
        b = await service.provision("memory://test", b"node-b")
        assert a.identity.node_id != b.identity.node_id


class TestFromConfig:
    async def test_uses_configured_store(self, clean_env, tmp_path: Path):
        config = CoreSettings(
            NODESEED_STORE_PATH=str(tmp_path / "store"),
            NODESEED_SEED_KEY="node",
            NODESEED_LOOKUP_TIMEOUT=2.0,
        )
        service = IdentityService.from_config(config)

        result = await service.provision_default()

        assert result.persisted is True
        assert (tmp_path / "store" / "keys" / f"{b'node'.hex()}.bin").read_bytes() == result.identity.seed
        assert service.bootstrapper.resolver.timeout == 2.0

    async def test_persist_disabled_by_config(self, clean_env, monkeypatch):
        monkeypatch.setenv("NODESEED_STORE_PATH", "memory://cfg")
        monkeypatch.setenv("NODESEED_PERSIST_GENERATED", "false")

        result = await IdentityService.from_config().provision_default()

        assert result.persisted is False

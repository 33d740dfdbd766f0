"""Key-value storage backends for persisted node seeds.

Identity code depends only on the :class:`KeyValueBackend` interface, an
async point-lookup capability, so any store offering ``get``/``put`` can be
plugged in.

Supported backends:
- Memory (tests, ephemeral nodes) addressed as ``memory://<name>``
- Local file system, one file per key, addressed by directory path
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.exceptions import StorageError

logger = logging.getLogger(__name__)

MEMORY_SCHEME = "memory://"

# Longer keys would overflow the 255-byte file name limit once hex encoded
MAX_HEX_KEY_BYTES = 64


@dataclass
class StorageStats:
    """Statistics for a storage backend."""

    backend_id: str
    backend_type: str
    total_keys: int = 0
    total_bytes: int = 0
    last_write: datetime | None = None
    healthy: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "backend_id": self.backend_id,
            "backend_type": self.backend_type,
            "total_keys": self.total_keys,
            "total_bytes": self.total_bytes,
            "last_write": self.last_write.isoformat() if self.last_write else None,
            "healthy": self.healthy,
        }


class KeyValueBackend(ABC):
    """Abstract base class for key-value backends.

    All operations are coroutines. Failures of the underlying store are
    reported as :class:`StorageError`; a missing key is not a failure.
    """

    @property
    @abstractmethod
    def backend_id(self) -> str:
        """Unique identifier for this backend instance."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Type of backend (e.g., 'local', 'memory')."""

    @abstractmethod
    async def get(self, key: bytes) -> bytes | None:
        """Return the value stored under ``key``, or None if absent.

        Raises:
            StorageError: If the store cannot be read
        """

    @abstractmethod
    async def put(self, key: bytes, value: bytes) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """

    @abstractmethod
    async def put_if_absent(self, key: bytes, value: bytes) -> bool:
        """Store ``value`` only if ``key`` holds nothing yet.

        Returns:
            True if the value was written, False if the key already existed

        Raises:
            StorageError: If the write fails
        """

    @abstractmethod
    async def delete(self, key: bytes) -> bool:
        """Delete ``key``.

        Returns:
            True if deleted, False if not found
        """

    @abstractmethod
    async def get_stats(self) -> StorageStats:
        """Get statistics for this backend."""

    async def exists(self, key: bytes) -> bool:
        """Check whether a value is stored under ``key``."""
        return await self.get(key) is not None

    async def health_check(self) -> bool:
        """Check if the backend is healthy and accessible."""
        try:
            stats = await self.get_stats()
        except StorageError as e:
            logger.warning(f"Health check failed for {self.backend_id}: {e}")
            return False
        return stats.healthy


class MemoryBackend(KeyValueBackend):
    """In-memory backend. Not persistent."""

    def __init__(self, backend_id: str = "memory-default"):
        self._id = backend_id
        self._storage: dict[bytes, bytes] = {}
        self._last_write: datetime | None = None

    @property
    def backend_id(self) -> str:
        return self._id

    @property
    def backend_type(self) -> str:
        return "memory"

    async def get(self, key: bytes) -> bytes | None:
        return self._storage.get(bytes(key))

    async def put(self, key: bytes, value: bytes) -> None:
        self._storage[bytes(key)] = bytes(value)
        self._last_write = datetime.now()

    async def put_if_absent(self, key: bytes, value: bytes) -> bool:
        # No await between check and set, so this is atomic on the event loop
        if bytes(key) in self._storage:
            return False
        await self.put(key, value)
        return True

    async def delete(self, key: bytes) -> bool:
        return self._storage.pop(bytes(key), None) is not None

    async def get_stats(self) -> StorageStats:
        return StorageStats(
            backend_id=self._id,
            backend_type="memory",
            total_keys=len(self._storage),
            total_bytes=sum(len(v) for v in self._storage.values()),
            last_write=self._last_write,
            healthy=True,
        )

    def clear(self) -> None:
        """Remove all stored values."""
        self._storage.clear()


class LocalFileBackend(KeyValueBackend):
    """Local file system backend.

    Each key is stored as ``<base>/keys/<hex(key)>.bin``; keys longer than
    ``MAX_HEX_KEY_BYTES`` use ``sha256-<hex(sha256(key))>.bin`` instead. Reads never
    create the directory; it appears on the first write. Blocking file
    I/O runs in a worker thread so concurrent bootstraps do not stall
    the event loop.
    """

    def __init__(self, base_path: str | Path, backend_id: str | None = None):
        self._base_path = Path(base_path)
        self._id = backend_id or f"local-{hashlib.md5(str(base_path).encode()).hexdigest()[:8]}"
        self._keys_dir = self._base_path / "keys"

    @property
    def backend_id(self) -> str:
        return self._id

    @property
    def backend_type(self) -> str:
        return "local"

    @property
    def base_path(self) -> Path:
        return self._base_path

    def _key_path(self, key: bytes) -> Path:
        key = bytes(key)
        if len(key) > MAX_HEX_KEY_BYTES:
            return self._keys_dir / f"sha256-{hashlib.sha256(key).hexdigest()}.bin"
        return self._keys_dir / f"{key.hex()}.bin"

    def _error(self, action: str, key: bytes | None, exc: OSError) -> StorageError:
        return StorageError(
            f"Failed to {action} {self._base_path}: {exc}",
            location=str(self._base_path),
            key=key,
        )

    def _read(self, key: bytes) -> bytes | None:
        try:
            return self._key_path(key).read_bytes()
        except FileNotFoundError:
            return None

    def _write_temp(self, value: bytes) -> Path:
        self._keys_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._keys_dir, suffix=".tmp")
        with os.fdopen(fd, "wb") as f:
            f.write(value)
            f.flush()
            os.fsync(f.fileno())
        return Path(tmp_name)

    def _write(self, key: bytes, value: bytes) -> None:
        tmp = self._write_temp(value)
        try:
            os.replace(tmp, self._key_path(key))
        finally:
            tmp.unlink(missing_ok=True)

    def _write_if_absent(self, key: bytes, value: bytes) -> bool:
        tmp = self._write_temp(value)
        try:
            # link() refuses to overwrite, unlike replace()
            os.link(tmp, self._key_path(key))
            return True
        except FileExistsError:
            return False
        finally:
            tmp.unlink(missing_ok=True)

    def _remove(self, key: bytes) -> bool:
        try:
            self._key_path(key).unlink()
            return True
        except FileNotFoundError:
            return False

    def _stats(self) -> StorageStats:
        total_keys = 0
        total_bytes = 0
        last_mtime = 0.0
        if self._keys_dir.exists():
            for key_file in self._keys_dir.glob("*.bin"):
                stat = key_file.stat()
                total_keys += 1
                total_bytes += stat.st_size
                last_mtime = max(last_mtime, stat.st_mtime)
        return StorageStats(
            backend_id=self._id,
            backend_type="local",
            total_keys=total_keys,
            total_bytes=total_bytes,
            last_write=datetime.fromtimestamp(last_mtime) if last_mtime else None,
            healthy=not self._base_path.exists() or self._base_path.is_dir(),
        )

    async def get(self, key: bytes) -> bytes | None:
        try:
            return await asyncio.to_thread(self._read, key)
        except OSError as e:
            raise self._error("read", key, e) from e

    async def put(self, key: bytes, value: bytes) -> None:
        try:
            await asyncio.to_thread(self._write, key, bytes(value))
        except OSError as e:
            raise self._error("write", key, e) from e

    async def put_if_absent(self, key: bytes, value: bytes) -> bool:
        try:
            return await asyncio.to_thread(self._write_if_absent, key, bytes(value))
        except OSError as e:
            raise self._error("write", key, e) from e

    async def delete(self, key: bytes) -> bool:
        try:
            return await asyncio.to_thread(self._remove, key)
        except OSError as e:
            raise self._error("delete from", key, e) from e

    async def get_stats(self) -> StorageStats:
        try:
            return await asyncio.to_thread(self._stats)
        except OSError as e:
            raise self._error("stat", None, e) from e


class BackendRegistry:
    """Registry of opened backends, keyed by storage location.

    ``memory://<name>`` locations share one :class:`MemoryBackend` per
    name; every other location is a :class:`LocalFileBackend` directory.
    """

    def __init__(self):
        self._backends: dict[str, KeyValueBackend] = {}

    def open(self, location: str) -> KeyValueBackend:
        """Return the backend for ``location``, creating it on first use."""
        backend = self._backends.get(location)
        if backend is None:
            if location.startswith(MEMORY_SCHEME):
                backend = MemoryBackend(backend_id=location)
            else:
                backend = LocalFileBackend(location)
            self._backends[location] = backend
        return backend

    def register(self, location: str, backend: KeyValueBackend) -> None:
        """Register a backend under an explicit location."""
        self._backends[location] = backend

    def unregister(self, location: str) -> bool:
        """Unregister a backend. Returns True if one was removed."""
        return self._backends.pop(location, None) is not None

    def get(self, location: str) -> KeyValueBackend | None:
        """Get a previously opened backend, or None."""
        return self._backends.get(location)

    def list_backends(self) -> list[str]:
        """List all registered locations."""
        return list(self._backends.keys())

    async def health_check_all(self) -> dict[str, bool]:
        """Check health of all registered backends."""
        health = {}
        for location, backend in self._backends.items():
            health[location] = await backend.health_check()
        return health

    def clear(self) -> None:
        """Forget all registered backends."""
        self._backends.clear()


_default_registry = BackendRegistry()


def get_registry() -> BackendRegistry:
    """Return the process-wide backend registry."""
    return _default_registry


def open_backend(location: str) -> KeyValueBackend:
    """Open ``location`` through the process-wide registry."""
    return _default_registry.open(location)

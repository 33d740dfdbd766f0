"""Seed storage backends.

The identity core only ever performs point reads through
:class:`KeyValueBackend`; writes belong to the provisioning layer.
"""

from nodeseed.storage.backend import (
    BackendRegistry,
    KeyValueBackend,
    LocalFileBackend,
    MemoryBackend,
    StorageStats,
    get_registry,
    open_backend,
)

__all__ = [
    "BackendRegistry",
    "KeyValueBackend",
    "LocalFileBackend",
    "MemoryBackend",
    "StorageStats",
    "get_registry",
    "open_backend",
]

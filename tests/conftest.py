"""Global test fixtures for the nodeseed test suite."""

from __future__ import annotations

import os

import pytest

from nodeseed.core.config import clear_config_cache
from nodeseed.storage.backend import MemoryBackend, get_registry


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Fresh config singleton and backend registry for every test."""
    clear_config_cache()
    get_registry().clear()
    yield
    clear_config_cache()
    get_registry().clear()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all NODESEED_ environment variables."""
    for key in list(os.environ.keys()):
        if key.startswith("NODESEED_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def memory_backend() -> MemoryBackend:
    """A MemoryBackend registered under memory://test."""
    backend = MemoryBackend(backend_id="memory://test")
    get_registry().register("memory://test", backend)
    return backend


class FixedRandom:
    """Deterministic random source returning queued values."""

    def __init__(self, *values: bytes):
        self._values = list(values)
        self.calls: list[int] = []

    def __call__(self, n: int) -> bytes:
        self.calls.append(n)
        if self._values:
            return self._values.pop(0)
        return bytes([len(self.calls)]) * n


@pytest.fixture
def fixed_random():
    """Factory for deterministic random sources."""
    return FixedRandom

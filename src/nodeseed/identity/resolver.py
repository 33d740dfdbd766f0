"""Seed resolver: a single point read against the seed store.

The resolver reports what it saw instead of raising. Deciding whether a
storage failure should be treated like a missing seed is left to the
caller (see :mod:`nodeseed.identity.bootstrap`).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from ..core.exceptions import StorageError
from ..storage.backend import KeyValueBackend, open_backend

logger = logging.getLogger(__name__)

BackendOpener = Callable[[str], KeyValueBackend]


class LookupStatus(StrEnum):
    """Outcome of a seed lookup."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    STORAGE_ERROR = "storage_error"


@dataclass(frozen=True)
class SeedLookup:
    """Result of :meth:`SeedResolver.resolve`."""

    status: LookupStatus
    value: bytes | None = None
    error: StorageError | None = None

    @classmethod
    def found(cls, value: bytes) -> SeedLookup:
        return cls(status=LookupStatus.FOUND, value=bytes(value))

    @classmethod
    def not_found(cls) -> SeedLookup:
        return cls(status=LookupStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: StorageError) -> SeedLookup:
        return cls(status=LookupStatus.STORAGE_ERROR, error=error)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND


def encode_key(key: bytes | str) -> bytes:
    """Normalize a storage key to bytes (str keys are UTF-8 encoded)."""
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


class SeedResolver:
    """Look up a stored seed by location and key.

    Args:
        opener: Maps a location string to a backend (default: process registry).
        timeout: Seconds to wait for the lookup; exceeding it counts as a
            storage failure. ``None`` waits indefinitely.
    """

    def __init__(self, opener: BackendOpener | None = None, timeout: float | None = None):
        self._opener = opener or open_backend
        self._timeout = timeout

    @property
    def timeout(self) -> float | None:
        return self._timeout

    async def resolve(self, location: str, key: bytes | str) -> SeedLookup:
        """Read the seed stored under ``key`` at ``location``.

        Cancellation of the calling task is not intercepted and propagates.

        Returns:
            FOUND with the raw stored bytes (length unchecked), NOT_FOUND, or
            STORAGE_ERROR carrying the :class:`StorageError`.
        """
        key = encode_key(key)
        try:
            backend = self._opener(location)
            value = await asyncio.wait_for(backend.get(key), timeout=self._timeout)
        except StorageError as e:
            logger.warning(f"Seed lookup failed at {location}: {e}")
            return SeedLookup.failed(e)
        except TimeoutError:
            logger.warning(f"Seed lookup at {location} timed out after {self._timeout}s")
            return SeedLookup.failed(
                StorageError(
                    f"Lookup timed out after {self._timeout}s",
                    location=location,
                    key=key,
                )
            )
        except Exception as e:
            # Third-party backends may raise their own error types
            logger.warning(f"Seed lookup at {location} raised {type(e).__name__}: {e}")
            error = StorageError(f"Lookup failed: {e}", location=location, key=key)
            error.__cause__ = e
            return SeedLookup.failed(error)

        if value is None:
            logger.debug(f"No seed stored at {location}")
            return SeedLookup.not_found()
        return SeedLookup.found(value)

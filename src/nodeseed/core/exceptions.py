# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Nodeseed Contributors

"""Exception hierarchy for nodeseed.

Recoverable conditions derive from :class:`NodeSeedException`. A broken
in-memory identity is reported with :class:`InvariantViolation`, which sits
outside that hierarchy on purpose: handlers written for storage or format
problems must not absorb it.
"""

from __future__ import annotations


class NodeSeedException(Exception):  # noqa: N818
    """Base exception for recoverable nodeseed errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class StorageError(NodeSeedException):
    """The seed store could not be opened, queried or written.

    Raised when:
    - The storage location is unreadable (permissions, not a directory)
    - A lookup times out
    - The backend reports corruption or an I/O failure
    """

    def __init__(
        self,
        message: str,
        location: str | None = None,
        key: bytes | None = None,
    ):
        details = {}
        if location is not None:
            details["location"] = location
        if key is not None:
            details["key"] = key.hex()
        super().__init__(message, details)
        self.location = location
        self.key = key


class MalformedSeedError(NodeSeedException):
    """A stored seed does not have the required length."""

    def __init__(self, message: str, length: int):
        super().__init__(message, {"length": length})
        self.length = length


class ConfigException(NodeSeedException):
    """Exception for configuration errors."""

    def __init__(self, message: str, setting: str | None = None):
        details = {}
        if setting:
            details["setting"] = setting
        super().__init__(message, details)
        self.setting = setting


class InvariantViolation(RuntimeError):  # noqa: N818
    """A live identity no longer satisfies its derivation invariants.

    Signals memory or data corruption, never an environmental condition.
    """

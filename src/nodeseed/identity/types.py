"""Fixed-size byte types used by node identities.

Each type is a distinct ``bytes`` subclass whose length is checked on
construction, so a 32-byte public key cannot be passed where a seed is
expected without a type checker noticing, and a truncated value never
gets as far as key generation.
"""

from __future__ import annotations

from typing import ClassVar


class FixedBytes(bytes):
    """Immutable byte string of exactly ``SIZE`` bytes."""

    SIZE: ClassVar[int] = 0

    def __new__(cls, value: bytes | bytearray | memoryview) -> FixedBytes:
        # bytes(int) would silently build a zero-filled buffer
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"{cls.__name__} requires a bytes-like value, got {type(value).__name__}")
        raw = bytes(value)
        if len(raw) != cls.SIZE:
            raise ValueError(f"{cls.__name__} must be exactly {cls.SIZE} bytes, got {len(raw)}")
        return super().__new__(cls, raw)

    @classmethod
    def from_hex(cls, text: str):
        """Build from a hex string (whitespace ignored)."""
        return cls(bytes.fromhex(text))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.hex()})"


class _SecretBytes(FixedBytes):
    """Fixed-size secret; its content never appears in ``repr``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(<{self.SIZE} bytes redacted>)"

    __str__ = __repr__


class Seed(_SecretBytes):
    """32-byte root secret a keypair is derived from."""

    SIZE = 32


class SecretKey(_SecretBytes):
    """64-byte Ed25519 secret key in expanded form (seed || public key)."""

    SIZE = 64


class PublicKey(FixedBytes):
    """32-byte Ed25519 public key."""

    SIZE = 32


class NodeId(FixedBytes):
    """20-byte node identifier: RIPEMD160(SHA3-256(public key))."""

    SIZE = 20

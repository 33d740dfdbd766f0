"""Tests for identity derivation and the verification operations.

Tests cover:
- Golden vectors (all-zero seed, RFC 8032 test 1)
- Determinism
- Hash chain node_id == RIPEMD160(SHA3-256(public_key))
- check_key() as a boolean health check
- get_node_id() failing hard on a corrupted identity
"""

from __future__ import annotations

import dataclasses
import hashlib
import os

import pytest
from Crypto.Hash import RIPEMD160
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from nodeseed.core.exceptions import InvariantViolation, NodeSeedException
from nodeseed.identity.node_identity import (
    NodeIdentity,
    compute_node_id,
    derive,
    keypair,
)
from nodeseed.identity.types import NodeId, PublicKey, SecretKey, Seed

# All-zero seed, pinned against Ed25519 / SHA3-256 / RIPEMD-160 reference outputs
ZERO_PUBLIC_KEY = bytes.fromhex("3b6a27bcceb6a42d62a3a8d02a6f0d73653215771de243a63ac048a18b59da29")
ZERO_NODE_ID = bytes.fromhex("8e1191a25a88142c2fb3f69787576e3dc713efc1")

# RFC 8032 section 7.1, TEST 1
RFC8032_SEED = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
RFC8032_PUBLIC_KEY = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")
RFC8032_NODE_ID = bytes.fromhex("46736da7089ab7000ae392580165a6693b349c24")


def _corrupt(identity: NodeIdentity, **fields) -> NodeIdentity:
    """Overwrite fields of a frozen identity, bypassing derivation."""
    for name, value in fields.items():
        object.__setattr__(identity, name, value)
    return identity


# ---------------------------------------------------------------------------
# Golden vectors
# ---------------------------------------------------------------------------


class TestGoldenVectors:
    def test_zero_seed(self):
        identity = derive(bytes(32))

        assert identity.seed == bytes(32)
        assert identity.public_key == ZERO_PUBLIC_KEY
        assert identity.secret_key == bytes(32) + ZERO_PUBLIC_KEY
        assert identity.node_id == ZERO_NODE_ID

    def test_zero_seed_sha3_digest(self):
        digest = hashlib.sha3_256(ZERO_PUBLIC_KEY).hexdigest()
        assert digest == "4f57405c0cc25ae5d2feef6a26e4e0ae26d53540d6b451606b0faadf2b93162c"

    def test_rfc8032_vector(self):
        identity = derive(RFC8032_SEED)

        assert identity.public_key == RFC8032_PUBLIC_KEY
        assert identity.secret_key == RFC8032_SEED + RFC8032_PUBLIC_KEY
        assert identity.node_id == RFC8032_NODE_ID

    def test_public_key_matches_cryptography(self):
        seed = os.urandom(32)
        expected = Ed25519PrivateKey.from_private_bytes(seed).public_key().public_bytes_raw()
        assert derive(seed).public_key == expected


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------


class TestDerive:
    def test_deterministic(self):
        seed = os.urandom(32)
        a = derive(seed)
        b = derive(seed)
        assert a == b
        assert (a.secret_key, a.public_key, a.node_id) == (b.secret_key, b.public_key, b.node_id)

    def test_different_seeds_different_ids(self):
        assert derive(b"\x01" * 32).node_id != derive(b"\x02" * 32).node_id

    def test_field_types(self):
        identity = derive(os.urandom(32))
        assert isinstance(identity.seed, Seed)
        assert isinstance(identity.secret_key, SecretKey)
        assert isinstance(identity.public_key, PublicKey)
        assert isinstance(identity.node_id, NodeId)
        assert (len(identity.secret_key), len(identity.public_key), len(identity.node_id)) == (64, 32, 20)

    def test_hash_chain(self):
        identity = derive(os.urandom(32))
        digest = hashlib.sha3_256(identity.public_key).digest()
        assert identity.node_id == RIPEMD160.new(digest).digest()

    def test_node_id_hashes_public_key_not_seed(self):
        identity = derive(os.urandom(32))
        assert identity.node_id != compute_node_id(PublicKey(identity.seed))

    def test_from_seed_matches_derive(self):
        seed = os.urandom(32)
        assert NodeIdentity.from_seed(seed) == derive(seed)

    @pytest.mark.parametrize("length", [0, 16, 31, 33, 64])
    def test_wrong_seed_length_fails_fast(self, length):
        with pytest.raises(ValueError):
            derive(b"\x00" * length)

    def test_non_bytes_seed_fails_fast(self):
        with pytest.raises(TypeError):
            derive("0" * 32)

    def test_keypair_layout(self):
        seed = os.urandom(32)
        secret_key, public_key = keypair(seed)
        assert secret_key[:32] == seed
        assert secret_key[32:] == public_key


class TestNodeIdentityModel:
    def test_frozen(self):
        identity = derive(bytes(32))
        with pytest.raises(dataclasses.FrozenInstanceError):
            identity.node_id = NodeId(bytes(20))

    def test_constructor_checks_lengths(self):
        with pytest.raises(ValueError):
            NodeIdentity(
                seed=bytes(32),
                secret_key=bytes(63),
                public_key=ZERO_PUBLIC_KEY,
                node_id=ZERO_NODE_ID,
            )

    def test_repr_hides_secrets(self):
        identity = derive(b"\xcd" * 32)
        text = repr(identity)
        assert "seed" not in text
        assert "secret_key" not in text
        assert identity.node_id.hex() in text

    def test_to_dict_is_public_only(self):
        identity = derive(bytes(32))
        assert identity.to_dict() == {
            "node_id": ZERO_NODE_ID.hex(),
            "public_key": ZERO_PUBLIC_KEY.hex(),
        }

    def test_hashable(self):
        assert len({derive(bytes(32)), derive(bytes(32))}) == 1


# ---------------------------------------------------------------------------
# Verification operations
# ---------------------------------------------------------------------------


class TestGetNodeId:
    def test_returns_stored_value(self):
        identity = derive(os.urandom(32))
        assert identity.get_node_id() == identity.node_id

    def test_zero_seed(self):
        assert derive(bytes(32)).get_node_id() == ZERO_NODE_ID

    def test_mismatch_is_fatal(self):
        identity = _corrupt(derive(bytes(32)), node_id=NodeId(b"\xff" * 20))
        with pytest.raises(InvariantViolation):
            identity.get_node_id()

    def test_tampered_public_key_is_fatal(self):
        other = derive(b"\x07" * 32)
        identity = _corrupt(derive(bytes(32)), public_key=other.public_key)
        with pytest.raises(InvariantViolation):
            identity.get_node_id()

    def test_violation_is_not_recoverable_error(self):
        assert not issubclass(InvariantViolation, NodeSeedException)


class TestCheckKey:
    def test_true_for_derived(self):
        assert derive(os.urandom(32)).check_key() is True

    def test_true_for_zero_seed(self):
        assert derive(bytes(32)).check_key() is True

    def test_false_when_seed_out_of_sync(self):
        identity = _corrupt(derive(bytes(32)), seed=Seed(b"\x01" * 32))
        assert identity.check_key() is False

    def test_false_when_secret_key_tampered(self):
        identity = derive(bytes(32))
        tampered = bytearray(identity.secret_key)
        tampered[0] ^= 0x01
        _corrupt(identity, secret_key=SecretKey(tampered))
        assert identity.check_key() is False

    def test_false_when_public_key_tampered(self):
        identity = _corrupt(derive(bytes(32)), public_key=derive(b"\x09" * 32).public_key)
        assert identity.check_key() is False

    def test_false_on_wrong_lengths(self):
        identity = derive(bytes(32))
        _corrupt(identity, secret_key=bytes(identity.secret_key)[:48])
        assert identity.check_key() is False

    def test_false_on_truncated_seed(self):
        identity = _corrupt(derive(bytes(32)), seed=bytes(16))
        assert identity.check_key() is False

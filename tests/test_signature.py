"""Tests for claimer signature verification."""

import pytest
import sr25519
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    decode_dss_signature,
)

from kilt_verifier.chain import KeyType, VerificationKey
from kilt_verifier.hashing import blake2b_256, hex_decode, unsalted_hash
from kilt_verifier.signature import verify_claimer_signature


ROOT_HASH = unsalted_hash("root")
OTHER_ROOT_HASH = unsalted_hash("other root")


@pytest.fixture
def ed25519_key():
    """Generate a test ed25519 key."""
    return Ed25519PrivateKey.generate()


@pytest.fixture
def secp256k1_key():
    """Generate a test secp256k1 key."""
    return ec.generate_private_key(ec.SECP256K1())


def sign_ecdsa(private_key, message: bytes) -> bytes:
    """Sign like substrate: blake2b-256 prehash, 65-byte r||s||v."""
    der = private_key.sign(blake2b_256(message), ec.ECDSA(Prehashed(hashes.SHA256())))
    r, s = decode_dss_signature(der)
    return r.to_bytes(32, "big") + s.to_bytes(32, "big") + b"\x00"


class TestSr25519:
    """Tests for sr25519 signatures."""

    def test_valid(self, sr25519_keypair, owner_key):
        """Test a signature over the raw root hash verifies."""
        signature = sr25519.sign(sr25519_keypair, hex_decode(ROOT_HASH))
        assert verify_claimer_signature(ROOT_HASH, "0x" + signature.hex(), owner_key)

    def test_signed_hex_text(self, sr25519_keypair, owner_key):
        """Test a signature over the hex text of the root hash is rejected."""
        signature = sr25519.sign(sr25519_keypair, ROOT_HASH.encode())
        assert not verify_claimer_signature(ROOT_HASH, "0x" + signature.hex(), owner_key)

    def test_other_root_hash(self, sr25519_keypair, owner_key):
        """Test a signature over a different root hash is rejected."""
        signature = sr25519.sign(sr25519_keypair, hex_decode(OTHER_ROOT_HASH))
        assert not verify_claimer_signature(ROOT_HASH, "0x" + signature.hex(), owner_key)

    def test_other_key(self, owner_key):
        """Test a signature by another key is rejected."""
        other = sr25519.pair_from_seed(b"\x07" * 32)
        signature = sr25519.sign(other, hex_decode(ROOT_HASH))
        assert not verify_claimer_signature(ROOT_HASH, "0x" + signature.hex(), owner_key)

    def test_wrong_length(self, owner_key):
        """Test truncated signatures are rejected."""
        assert not verify_claimer_signature(ROOT_HASH, "0x" + "00" * 63, owner_key)

    def test_not_schnorrkel(self, owner_key):
        """Test a correct-length signature without the schnorrkel marker is rejected."""
        assert not verify_claimer_signature(ROOT_HASH, "0x" + "00" * 64, owner_key)

    def test_invalid_hex(self, owner_key):
        """Test undecodable signatures are rejected."""
        assert not verify_claimer_signature(ROOT_HASH, "0xnothex", owner_key)


class TestEd25519:
    """Tests for ed25519 signatures."""

    def test_valid(self, ed25519_key):
        """Test a valid ed25519 signature."""
        key = VerificationKey(
            key_type=KeyType.ED25519,
            public_key=ed25519_key.public_key().public_bytes(
                serialization.Encoding.Raw, serialization.PublicFormat.Raw
            ),
        )
        signature = ed25519_key.sign(hex_decode(ROOT_HASH))
        assert verify_claimer_signature(ROOT_HASH, "0x" + signature.hex(), key)
        assert not verify_claimer_signature(OTHER_ROOT_HASH, "0x" + signature.hex(), key)


class TestEcdsa:
    """Tests for secp256k1 ecdsa signatures."""

    def test_valid(self, secp256k1_key):
        """Test a valid substrate-style ecdsa signature."""
        key = VerificationKey(
            key_type=KeyType.ECDSA,
            public_key=secp256k1_key.public_key().public_bytes(
                serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
            ),
        )
        signature = sign_ecdsa(secp256k1_key, hex_decode(ROOT_HASH))

        assert len(key.public_key) == 33
        assert verify_claimer_signature(ROOT_HASH, "0x" + signature.hex(), key)
        assert not verify_claimer_signature(OTHER_ROOT_HASH, "0x" + signature.hex(), key)

    def test_der_signature_rejected(self, secp256k1_key):
        """Test DER signatures are not accepted in place of r||s||v."""
        key = VerificationKey(
            key_type=KeyType.ECDSA,
            public_key=secp256k1_key.public_key().public_bytes(
                serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
            ),
        )
        der = secp256k1_key.sign(
            blake2b_256(hex_decode(ROOT_HASH)), ec.ECDSA(Prehashed(hashes.SHA256()))
        )
        assert not verify_claimer_signature(ROOT_HASH, "0x" + der.hex(), key)

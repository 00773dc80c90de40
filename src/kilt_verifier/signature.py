"""
Claimer signature verification.

The claimer signs the raw bytes of the credential's root hash with the
authentication key of their DID. KILT DIDs may use sr25519, ed25519 or
ecdsa (secp256k1) keys.
"""

from __future__ import annotations

import logging

import sr25519
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    encode_dss_signature,
)

from kilt_verifier.chain import KeyType, VerificationKey
from kilt_verifier.hashing import blake2b_256, hex_decode

logger = logging.getLogger(__name__)


def _verify_sr25519(public_key: bytes, message: bytes, signature: bytes) -> bool:
    if len(signature) != 64 or len(public_key) != 32:
        return False
    try:
        return bool(sr25519.verify(signature, message, public_key))
    except ValueError:
        # bytes not marked as a schnorrkel signature
        return False


def _verify_ed25519(public_key: bytes, message: bytes, signature: bytes) -> bool:
    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, message)
        return True
    except (InvalidSignature, ValueError):
        return False


def _verify_ecdsa(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Verify a substrate ecdsa signature.

    The message is hashed with blake2b-256 and the signature is a 65-byte
    recoverable ``r||s||v``; the recovery byte is not needed here.
    """
    if len(signature) != 65:
        return False
    try:
        ec_public_key = ec.EllipticCurvePublicKey.from_encoded_point(
            ec.SECP256K1(), public_key
        )
    except ValueError:
        return False

    r = int.from_bytes(signature[:32], byteorder="big")
    s = int.from_bytes(signature[32:64], byteorder="big")
    try:
        # Prehashed only checks the digest length; blake2b-256 matches SHA256's
        ec_public_key.verify(
            encode_dss_signature(r, s),
            blake2b_256(message),
            ec.ECDSA(Prehashed(hashes.SHA256())),
        )
        return True
    except InvalidSignature:
        return False


_VERIFIERS = {
    KeyType.SR25519: _verify_sr25519,
    KeyType.ED25519: _verify_ed25519,
    KeyType.ECDSA: _verify_ecdsa,
}


def verify_claimer_signature(
    root_hash: str,
    signature: str,
    key: VerificationKey,
) -> bool:
    """Verify the claimer's signature over a root hash.

    Args:
        root_hash: The ``0x`` hex root hash; its decoded bytes are the message.
        signature: The ``0x`` hex signature.
        key: The claimer's resolved authentication key.

    Returns:
        True if the signature is valid, False otherwise.
    """
    try:
        message = hex_decode(root_hash)
        signature_bytes = hex_decode(signature)
    except ValueError:
        return False

    verifier = _VERIFIERS.get(key.key_type)
    if verifier is None:
        logger.debug("No verifier for key type %s", key.key_type)
        return False
    return verifier(key.public_key, message, signature_bytes)

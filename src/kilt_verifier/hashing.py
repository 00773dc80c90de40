"""
Blake2b-256 hashing used by KILT claims.

Every hash produced here is rendered as lowercase hex with a ``0x`` prefix,
the encoding used throughout KILT credentials.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterable

DIGEST_SIZE = 32

# bytes.fromhex alone would accept whitespace between digit pairs
_HEX_RE = re.compile(r"(0[xX])?[0-9a-fA-F]*")


def hex_encode(data: bytes) -> str:
    """Encode bytes as ``0x``-prefixed lowercase hex."""
    return "0x" + data.hex()


def hex_decode(value: str) -> bytes:
    """Decode ``0x``-prefixed hex (case-insensitive).

    Raises:
        ValueError: If the value is not valid hex.
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected hex string, got {type(value).__name__}")
    if not _HEX_RE.fullmatch(value):
        raise ValueError(f"Not a hex string: {value!r}")
    if value[:2].lower() == "0x":
        value = value[2:]
    return bytes.fromhex(value)


def blake2b_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=DIGEST_SIZE).digest()


def unsalted_hash(data: str | bytes) -> str:
    """Hash a canonical claim statement."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hex_encode(blake2b_256(data))


def salted_hash(nonce: str, unsalted_hex: str) -> str:
    """Hash a nonce together with the hex text of an unsalted hash.

    The unsalted hash is hashed as its textual form, not decoded.
    """
    hasher = hashlib.blake2b(digest_size=DIGEST_SIZE)
    hasher.update(nonce.encode("utf-8"))
    hasher.update(unsalted_hex.encode("utf-8"))
    return hex_encode(hasher.digest())


def root_hash(claim_hashes: Iterable[str]) -> str:
    """Hash the decoded claim hashes concatenated in the given order."""
    hasher = hashlib.blake2b(digest_size=DIGEST_SIZE)
    for claim_hash in claim_hashes:
        hasher.update(hex_decode(claim_hash))
    return hex_encode(hasher.digest())

"""
did:kilt identifiers.

A KILT DID is ``did:kilt:<ss58 address>``; the address encodes the 32-byte
DID identifier (account id) with network prefix 38. Key ids take the form
``did:kilt:<address>#0x<blake2b-256 of the key>``.
"""

from __future__ import annotations

import hashlib

import base58

from kilt_verifier.hashing import hex_decode, hex_encode

KILT_DID_PREFIX = "did:kilt:"
KILT_SS58_FORMAT = 38
SS58_CHECKSUM_PREFIX = b"SS58PRE"


class DIDResolutionError(Exception):
    """Raised when DID resolution fails."""


def _ss58_checksum(payload: bytes) -> bytes:
    return hashlib.blake2b(SS58_CHECKSUM_PREFIX + payload, digest_size=64).digest()[:2]


def _ss58_prefix_bytes(ss58_format: int) -> bytes:
    if ss58_format < 64:
        return bytes([ss58_format])
    # Two-byte form for formats 64..16383
    first = ((ss58_format & 0b0000_0000_1111_1100) >> 2) | 0b0100_0000
    second = (ss58_format >> 8) | ((ss58_format & 0b0000_0000_0000_0011) << 6)
    return bytes([first, second])


def ss58_decode(address: str, ss58_format: int | None = KILT_SS58_FORMAT) -> bytes:
    """Decode an SS58 address to its 32-byte account id.

    Args:
        address: The SS58 address.
        ss58_format: Expected network format, or None to accept any.

    Raises:
        DIDResolutionError: If the address is malformed.
    """
    try:
        raw = base58.b58decode(address)
    except ValueError as e:
        raise DIDResolutionError(f"Invalid SS58 address: {address}") from e

    if len(raw) < 35:
        raise DIDResolutionError(f"Invalid SS58 address length: {address}")

    prefix_len = 1 if raw[0] < 64 else 2
    payload, checksum = raw[:-2], raw[-2:]
    account_id = payload[prefix_len:]
    if len(account_id) != 32:
        raise DIDResolutionError(f"Unsupported SS58 account length: {address}")

    if _ss58_checksum(payload) != checksum:
        raise DIDResolutionError(f"Invalid SS58 checksum: {address}")

    if prefix_len == 1:
        found_format = raw[0]
    else:
        found_format = ((raw[0] & 0b0011_1111) << 2) | (raw[1] >> 6) | ((raw[1] & 0b0011_1111) << 8)
    if ss58_format is not None and found_format != ss58_format:
        raise DIDResolutionError(
            f"Unexpected SS58 format {found_format} (expected {ss58_format}): {address}"
        )

    return account_id


def ss58_encode(account_id: bytes, ss58_format: int = KILT_SS58_FORMAT) -> str:
    """Encode a 32-byte account id as an SS58 address."""
    if len(account_id) != 32:
        raise ValueError(f"Account id must be 32 bytes, got {len(account_id)}")
    payload = _ss58_prefix_bytes(ss58_format) + account_id
    return base58.b58encode(payload + _ss58_checksum(payload)).decode("ascii")


def parse_did(did: str) -> bytes:
    """Return the DID identifier (account id) of a did:kilt DID.

    A fragment, if present, is ignored.

    Raises:
        DIDResolutionError: If the DID is not a valid did:kilt identifier.
    """
    base_did = did.split("#")[0]
    if not base_did.startswith(KILT_DID_PREFIX):
        raise DIDResolutionError(f"Invalid did:kilt identifier: {did}")
    return ss58_decode(base_did[len(KILT_DID_PREFIX):])


def encode_did(account_id: bytes) -> str:
    """Build the did:kilt DID of an account id."""
    return KILT_DID_PREFIX + ss58_encode(account_id)


def split_key_id(key_id: str) -> tuple[str, bytes]:
    """Split a key id into its DID and raw key hash.

    ``did:kilt:4s...#0x7857...`` -> (``did:kilt:4s...``, 32 raw bytes)

    Raises:
        DIDResolutionError: If the key id is malformed.
    """
    did, sep, fragment = key_id.partition("#")
    if not sep:
        raise DIDResolutionError(f"Key id has no fragment: {key_id}")
    try:
        key_hash = hex_decode(fragment)
    except ValueError as e:
        raise DIDResolutionError(f"Key id fragment is not hex: {key_id}") from e
    if len(key_hash) != 32:
        raise DIDResolutionError(
            f"Key id fragment must be 32 bytes, got {len(key_hash)}: {key_id}"
        )
    return did, key_hash


def format_key_id(did: str, key_hash: bytes) -> str:
    return f"{did}#{hex_encode(key_hash)}"

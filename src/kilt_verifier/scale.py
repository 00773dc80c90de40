"""
SCALE decoding of the KILT storage records read by the verifier.

Only the types needed for DID key resolution and attestation lookup are
covered. Decoding is strict about truncated input but ignores trailing
fields that the verifier does not use (deposits, counters).
"""

from __future__ import annotations

from dataclasses import dataclass

from kilt_verifier.chain import KeyType, VerificationKey


class ScaleDecodeError(Exception):
    """Raised when a SCALE payload cannot be decoded."""


class ScaleReader:
    """Cursor over a SCALE-encoded byte string."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.offset = 0

    def read(self, length: int) -> bytes:
        end = self.offset + length
        if end > len(self.data):
            raise ScaleDecodeError(
                f"Unexpected end of data: need {length} bytes at offset {self.offset}"
            )
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def u8(self) -> int:
        return self.read(1)[0]

    def u64(self) -> int:
        return int.from_bytes(self.read(8), "little")

    def boolean(self) -> bool:
        value = self.u8()
        if value not in (0, 1):
            raise ScaleDecodeError(f"Invalid bool byte: {value}")
        return value == 1

    def compact(self) -> int:
        """Decode a compact-encoded unsigned integer."""
        first = self.u8()
        mode = first & 0b11
        if mode == 0:
            return first >> 2
        if mode == 1:
            return int.from_bytes(bytes([first]) + self.read(1), "little") >> 2
        if mode == 2:
            return int.from_bytes(bytes([first]) + self.read(3), "little") >> 2
        return int.from_bytes(self.read((first >> 2) + 4), "little")

    def option(self) -> bool:
        """Read an Option tag; True if a value follows."""
        tag = self.u8()
        if tag not in (0, 1):
            raise ScaleDecodeError(f"Invalid Option tag: {tag}")
        return tag == 1

    def h256(self) -> bytes:
        return self.read(32)


# DidVerificationKey variants, by SCALE enum index
_VERIFICATION_KEYS = {
    0: (KeyType.ED25519, 32),
    1: (KeyType.SR25519, 32),
    2: (KeyType.ECDSA, 33),
}


@dataclass
class DidPublicKeyDetails:
    """A key stored in a DID, with the block it was added in."""

    verification_key: VerificationKey | None
    block_number: int


@dataclass
class DidDetails:
    """The parts of an on-chain DID the verifier needs."""

    authentication_key: bytes
    key_agreement_keys: list[bytes]
    delegation_key: bytes | None
    attestation_key: bytes | None
    public_keys: dict[bytes, DidPublicKeyDetails]


@dataclass
class AttestationDetails:
    """An on-chain attestation record."""

    ctype_hash: bytes
    attester: bytes
    authorization_id: bytes | None
    revoked: bool


def _decode_did_public_key(reader: ScaleReader) -> VerificationKey | None:
    kind = reader.u8()
    if kind == 0:
        variant = reader.u8()
        if variant not in _VERIFICATION_KEYS:
            raise ScaleDecodeError(f"Unknown DidVerificationKey variant: {variant}")
        key_type, length = _VERIFICATION_KEYS[variant]
        return VerificationKey(key_type=key_type, public_key=reader.read(length))
    if kind == 1:
        # Encryption keys (X25519) cannot verify signatures
        variant = reader.u8()
        if variant != 0:
            raise ScaleDecodeError(f"Unknown DidEncryptionKey variant: {variant}")
        reader.read(32)
        return None
    raise ScaleDecodeError(f"Unknown DidPublicKey variant: {kind}")


def decode_did_details(data: bytes) -> DidDetails:
    """Decode a ``Did.Did`` storage value."""
    reader = ScaleReader(data)
    authentication_key = reader.h256()
    key_agreement_keys = [reader.h256() for _ in range(reader.compact())]
    delegation_key = reader.h256() if reader.option() else None
    attestation_key = reader.h256() if reader.option() else None

    public_keys: dict[bytes, DidPublicKeyDetails] = {}
    for _ in range(reader.compact()):
        key_id = reader.h256()
        key = _decode_did_public_key(reader)
        public_keys[key_id] = DidPublicKeyDetails(
            verification_key=key,
            block_number=reader.u64(),
        )

    return DidDetails(
        authentication_key=authentication_key,
        key_agreement_keys=key_agreement_keys,
        delegation_key=delegation_key,
        attestation_key=attestation_key,
        public_keys=public_keys,
    )


def decode_attestation_details(data: bytes) -> AttestationDetails:
    """Decode an ``Attestation.Attestations`` storage value."""
    reader = ScaleReader(data)
    ctype_hash = reader.h256()
    attester = reader.read(32)

    authorization_id = None
    if reader.option():
        variant = reader.u8()
        if variant != 0:
            raise ScaleDecodeError(f"Unknown AuthorizationId variant: {variant}")
        authorization_id = reader.h256()

    return AttestationDetails(
        ctype_hash=ctype_hash,
        attester=attester,
        authorization_id=authorization_id,
        revoked=reader.boolean(),
    )

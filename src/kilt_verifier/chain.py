"""
Chain collaborator interface.

The verifier reads two things from the KILT chain: the owner's current
authentication key and the attestation of a root hash. Both are served by
a :class:`ChainClient`, so the networked client can be swapped for an
in-memory one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class ChainLookupError(Exception):
    """Raised when the chain cannot be queried (network, RPC, decoding).

    Distinct from a definitive negative answer: the lookup may succeed
    when retried.
    """


class KeyType(Enum):
    """DID verification key types."""

    ED25519 = "ed25519"
    SR25519 = "sr25519"
    ECDSA = "ecdsa"


@dataclass(frozen=True)
class VerificationKey:
    """A DID public verification key."""

    key_type: KeyType
    public_key: bytes


@dataclass(frozen=True)
class Attestation:
    """An on-chain attestation record."""

    root_hash: str
    ctype_hash: str
    attester: str
    revoked: bool
    authorization_id: str | None = None


class ChainClient(Protocol):
    """Read-only access to DID and attestation storage."""

    async def resolve_authentication_key(
        self, did: str, key_id: str
    ) -> VerificationKey:
        """Resolve the active authentication key of a DID.

        Args:
            did: The owner DID.
            key_id: The full key id (``<did>#0x<key hash>``).

        Raises:
            DIDResolutionError: If the DID or key does not exist, or the key
                is not the DID's current authentication key.
            ChainLookupError: If the chain could not be queried.
        """
        ...

    async def get_attestation(self, root_hash: bytes) -> Attestation | None:
        """Look up the attestation of a root hash.

        Returns:
            The attestation, or None if the root hash was never attested.

        Raises:
            ChainLookupError: If the chain could not be queried.
        """
        ...

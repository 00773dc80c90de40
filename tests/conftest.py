"""Shared fixtures for KILT verifier tests."""

from __future__ import annotations

import asyncio
import copy
import uuid

import pytest
import sr25519

from kilt_verifier.canonical import canonicalize_claim
from kilt_verifier.chain import (
    Attestation,
    KeyType,
    VerificationKey,
)
from kilt_verifier.did import DIDResolutionError
from kilt_verifier.hashing import hex_decode, root_hash, salted_hash, unsalted_hash


OWNER = "did:kilt:4siDmerNEBREZJsFoLM95x6cxEho73bCWKEDAXrKdou4a3mH"
KEY_ID = OWNER + "#0x78579576fa15684e5d868c9e123d62d471f1a95d8f9fc8032179d3735069784d"
CTYPE_HASH = "0x3291bb126e33b4862d421bfaa1d2f272e6cdfc4f96658988fbcffea8914bd9ac"
TRUSTED_ISSUER = "did:kilt:4pnfkRn5UurBJTW92d9TaVLR2CqJdY4z5HPjrEbpGyBykare"

EXAMPLE_CREDENTIAL = {
    "claim": {
        "cTypeHash": CTYPE_HASH,
        "contents": {"Email": "tino@kilt.io"},
        "owner": OWNER,
    },
    "claimHashes": [
        "0x2192b61d3f3109920e8991952a3fad9b7158e4fcac96dcfb873d5e975ba057e4",
        "0x2ef47f014e20bb908595f71ff022a53d7d84b5370dfed18479d4eee0575483c9",
    ],
    "claimNonceMap": {
        "0x0e0d56f241309d5a06ddf94e01d97d946f9b004d4f847302f050e5accf429c83": "5f25a0d1-b68f-4e06-a003-26c391935540",
        "0x758777288cc6705af9fb1b65f00647da18f696458ccbc59c4de0d50873e2b19d": "c57e9c72-fa8a-4e4f-b60f-a20234317bda",
    },
    "legitimations": [],
    "delegationId": None,
    "rootHash": "0xf69ce26ca50b5d5f38cd32a99d031cd52fff42f17b9afb32895ffba260fb616a",
    "claimerSignature": {
        "keyId": KEY_ID,
        "signature": "0x6243baecdfa9c752161f501597bafbb0242db1174bb8362c18d6e51bdbbdf041997fb736a07dcf56cb023687c4cc044ffba39e0dfcf01b7caa00f0f8b4fbbd81",
    },
}


def build_credential(
    contents: dict,
    keypair: tuple[bytes, bytes],
    owner: str = OWNER,
    key_id: str = KEY_ID,
    ctype_hash: str = CTYPE_HASH,
    disclose: list[str] | None = None,
) -> dict:
    """Build a credential the way a KILT claimer would, signed with sr25519.

    Args:
        contents: All attested contents.
        keypair: sr25519 (public, private) keypair of the owner.
        disclose: Field names to present; all fields if None. Hashes of
            undisclosed fields stay in claimHashes.
    """
    nonce_map = {}
    claim_hashes = []
    for _, statement in canonicalize_claim(owner, ctype_hash, contents):
        digest = unsalted_hash(statement)
        nonce = str(uuid.uuid4())
        nonce_map[digest] = nonce
        claim_hashes.append(salted_hash(nonce, digest))

    credential_root = root_hash(claim_hashes)
    signature = sr25519.sign(keypair, hex_decode(credential_root))

    credential = {
        "claim": {"cTypeHash": ctype_hash, "contents": dict(contents), "owner": owner},
        "claimHashes": claim_hashes,
        "claimNonceMap": nonce_map,
        "rootHash": credential_root,
        "claimerSignature": {"keyId": key_id, "signature": "0x" + signature.hex()},
    }

    if disclose is not None:
        disclosed = {k: v for k, v in contents.items() if k in disclose}
        credential["claim"]["contents"] = disclosed
        kept = {
            unsalted_hash(statement)
            for _, statement in canonicalize_claim(owner, ctype_hash, disclosed)
        }
        credential["claimNonceMap"] = {
            k: v for k, v in nonce_map.items() if k in kept
        }

    return credential


class FakeChain:
    """In-memory ChainClient."""

    def __init__(self, delay: float = 0.0) -> None:
        self.keys: dict[str, VerificationKey] = {}
        self.attestations: dict[str, Attestation] = {}
        self.key_error: Exception | None = None
        self.attestation_error: Exception | None = None
        self.delay = delay
        self.calls: list[str] = []

    def add_key(self, key_id: str, key: VerificationKey) -> None:
        self.keys[key_id] = key

    def attest(
        self,
        credential_root: str,
        attester: str = TRUSTED_ISSUER,
        revoked: bool = False,
    ) -> None:
        self.attestations[credential_root.lower()] = Attestation(
            root_hash=credential_root.lower(),
            ctype_hash=CTYPE_HASH,
            attester=attester,
            revoked=revoked,
        )

    async def resolve_authentication_key(self, did: str, key_id: str) -> VerificationKey:
        self.calls.append("key")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.key_error is not None:
            raise self.key_error
        if key_id not in self.keys:
            raise DIDResolutionError(f"Key {key_id} not found in DID {did}")
        return self.keys[key_id]

    async def get_attestation(self, root: bytes) -> Attestation | None:
        self.calls.append("attestation")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.attestation_error is not None:
            raise self.attestation_error
        return self.attestations.get("0x" + root.hex())


@pytest.fixture
def example_credential() -> dict:
    """The KILT example credential (socialkyc.io email attestation)."""
    return copy.deepcopy(EXAMPLE_CREDENTIAL)


@pytest.fixture
def sr25519_keypair() -> tuple[bytes, bytes]:
    """Deterministic sr25519 keypair of the test owner."""
    return sr25519.pair_from_seed(bytes(range(32)))


@pytest.fixture
def owner_key(sr25519_keypair) -> VerificationKey:
    public_key, _ = sr25519_keypair
    return VerificationKey(key_type=KeyType.SR25519, public_key=public_key)


@pytest.fixture
def signed_credential(sr25519_keypair) -> dict:
    """A freshly built credential with two fields, signed by the owner."""
    return build_credential(
        {"Email": "alice@example.com", "Age": 42},
        sr25519_keypair,
    )


@pytest.fixture
def chain(owner_key, signed_credential) -> FakeChain:
    """Chain that knows the owner key and attests the signed credential."""
    fake = FakeChain()
    fake.add_key(KEY_ID, owner_key)
    fake.attest(signed_credential["rootHash"])
    return fake



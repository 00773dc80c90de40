"""
KILT credential data model.

Parses a decoded credential (as produced by ``json.load``) into immutable
dataclasses, rejecting structurally invalid input up front.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from kilt_verifier.hashing import hex_decode


class MalformedCredentialError(Exception):
    """Raised when a credential is structurally invalid."""


def _require(data: Mapping[str, Any], key: str, kind: type, where: str) -> Any:
    if key not in data:
        raise MalformedCredentialError(f"Missing {where}{key}")
    value = data[key]
    if not isinstance(value, kind):
        raise MalformedCredentialError(
            f"{where}{key} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _require_hex(value: Any, what: str, length: int | None = None) -> str:
    if not isinstance(value, str) or not value[:2].lower() == "0x":
        raise MalformedCredentialError(f"{what} must be a 0x-prefixed hex string")
    try:
        raw = hex_decode(value)
    except ValueError as e:
        raise MalformedCredentialError(f"{what} is not valid hex: {value}") from e
    if length is not None and len(raw) != length:
        raise MalformedCredentialError(
            f"{what} must be {length} bytes, got {len(raw)}"
        )
    return value


@dataclass(frozen=True)
class Claim:
    """The attested statements about the owner."""

    ctype_hash: str
    owner: str
    contents: Mapping[str, Any]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Claim:
        """Create a Claim from its JSON form."""
        ctype_hash = _require(data, "cTypeHash", str, "claim.")
        owner = _require(data, "owner", str, "claim.")
        contents = _require(data, "contents", dict, "claim.")
        if not owner.startswith("did:"):
            raise MalformedCredentialError(f"claim.owner is not a DID: {owner}")
        return cls(
            ctype_hash=ctype_hash,
            owner=owner,
            contents=MappingProxyType(dict(contents)),
        )


@dataclass(frozen=True)
class ClaimerSignature:
    """Signature of the claim owner over the root hash."""

    key_id: str
    signature: str

    @property
    def did(self) -> str:
        """The DID part of the key id."""
        return self.key_id.split("#", 1)[0]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClaimerSignature:
        key_id = _require(data, "keyId", str, "claimerSignature.")
        signature = _require(data, "signature", str, "claimerSignature.")
        if "#" not in key_id:
            raise MalformedCredentialError(
                f"claimerSignature.keyId has no key fragment: {key_id}"
            )
        return cls(
            key_id=key_id,
            signature=_require_hex(signature, "claimerSignature.signature"),
        )


@dataclass(frozen=True)
class Credential:
    """A KILT credential as presented by the claimer."""

    claim: Claim
    claim_hashes: tuple[str, ...]
    claim_nonce_map: Mapping[str, str]
    root_hash: str
    claimer_signature: ClaimerSignature
    extras: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Credential:
        """Parse a decoded credential.

        Keys other than the verified ones (``legitimations``,
        ``delegationId``, ...) are kept in ``extras`` untouched.

        Raises:
            MalformedCredentialError: If the credential is structurally invalid.
        """
        if not isinstance(data, Mapping):
            raise MalformedCredentialError("Credential must be a JSON object")

        claim = Claim.from_dict(_require(data, "claim", dict, ""))

        claim_hashes = tuple(
            _require_hex(h, f"claimHashes[{i}]", 32)
            for i, h in enumerate(_require(data, "claimHashes", list, ""))
        )

        nonce_map: dict[str, str] = {}
        for key, nonce in _require(data, "claimNonceMap", dict, "").items():
            _require_hex(key, f"claimNonceMap key {key!r}", 32)
            if not isinstance(nonce, str):
                raise MalformedCredentialError(
                    f"claimNonceMap[{key}] must be a string"
                )
            if key.lower() in nonce_map:
                raise MalformedCredentialError(
                    f"claimNonceMap has duplicate key {key!r}"
                )
            nonce_map[key.lower()] = nonce

        root_hash = _require_hex(
            _require(data, "rootHash", str, ""), "rootHash", 32
        )
        signature = ClaimerSignature.from_dict(
            _require(data, "claimerSignature", dict, "")
        )

        known = {"claim", "claimHashes", "claimNonceMap", "rootHash", "claimerSignature"}
        return cls(
            claim=claim,
            claim_hashes=claim_hashes,
            claim_nonce_map=MappingProxyType(nonce_map),
            root_hash=root_hash,
            claimer_signature=signature,
            extras=MappingProxyType({k: v for k, v in data.items() if k not in known}),
        )

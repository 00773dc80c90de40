"""
KILT chain client over JSON-RPC.

Reads DID and attestation storage from a KILT node with
``state_getStorage`` and decodes the SCALE-encoded values.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

import httpx
import xxhash

from kilt_verifier.chain import Attestation, ChainLookupError, VerificationKey
from kilt_verifier.did import DIDResolutionError, encode_did, parse_did, split_key_id
from kilt_verifier.hashing import hex_decode, hex_encode
from kilt_verifier.scale import (
    DidDetails,
    ScaleDecodeError,
    decode_attestation_details,
    decode_did_details,
)

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://spiritnet.kilt.io"


def twox_128(data: bytes) -> bytes:
    """Substrate's twox-128: two seeded xxh64 digests, little-endian."""
    return b"".join(
        xxhash.xxh64(data, seed=seed).intdigest().to_bytes(8, "little")
        for seed in (0, 1)
    )


def blake2_128_concat(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=16).digest() + data


def storage_key(pallet: str, item: str, key: bytes) -> str:
    """Storage key of a ``Blake2_128Concat`` map entry."""
    return hex_encode(
        twox_128(pallet.encode())
        + twox_128(item.encode())
        + blake2_128_concat(key)
    )


class KiltChainClient:
    """Chain client reading KILT storage through a node's RPC endpoint."""

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        cache_dids: bool = False,
    ) -> None:
        """Initialize the chain client.

        Args:
            endpoint: HTTP(S) JSON-RPC endpoint of a KILT node.
            timeout: HTTP request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
            cache_dids: Reuse fetched DID details across lookups. Off by
                default so key rotations are seen immediately.
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.cache_dids = cache_dids
        self._cache: dict[str, DidDetails] = {}
        self._request_id = 0

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        """Send a JSON-RPC request and return its result.

        Raises:
            ChainLookupError: On transport errors or an RPC error response.
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, verify=self.verify_ssl
            ) as client:
                response = await client.post(self.endpoint, json=payload)
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPStatusError as e:
            raise ChainLookupError(
                f"HTTP error calling {method}: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ChainLookupError(f"Network error calling {method}: {e}") from e
        except ValueError as e:
            raise ChainLookupError(f"Invalid JSON-RPC response for {method}") from e

        if not isinstance(data, dict):
            raise ChainLookupError(f"Invalid JSON-RPC response for {method}")
        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise ChainLookupError(f"RPC error calling {method}: {message}")
        return data.get("result")

    async def get_storage(self, key: str) -> bytes | None:
        """Read a raw storage value; None if the key is empty."""
        result = await self._rpc("state_getStorage", [key])
        if result is None:
            return None
        try:
            return hex_decode(result)
        except ValueError as e:
            raise ChainLookupError(f"Storage value is not hex: {result!r}") from e

    async def get_did(self, did: str, use_cache: bool = True) -> DidDetails:
        """Fetch the on-chain details of a DID.

        Raises:
            DIDResolutionError: If the DID is invalid or not on chain.
            ChainLookupError: If the chain could not be queried.
        """
        base_did = did.split("#")[0]
        if use_cache and base_did in self._cache:
            return self._cache[base_did]

        account_id = parse_did(base_did)
        raw = await self.get_storage(storage_key("Did", "Did", account_id))
        if raw is None:
            raise DIDResolutionError(f"DID not found on chain: {base_did}")

        try:
            details = decode_did_details(raw)
        except ScaleDecodeError as e:
            raise ChainLookupError(f"Could not decode DID details of {base_did}: {e}") from e

        logger.debug("Fetched %s with %d keys", base_did, len(details.public_keys))
        if use_cache:
            self._cache[base_did] = details
        return details

    async def resolve_authentication_key(
        self, did: str, key_id: str
    ) -> VerificationKey:
        """Resolve the active authentication key of a DID."""
        key_did, key_hash = split_key_id(key_id)
        if key_did != did.split("#")[0]:
            raise DIDResolutionError(f"Key {key_id} does not belong to {did}")

        details = await self.get_did(did, use_cache=self.cache_dids)
        if key_hash != details.authentication_key:
            raise DIDResolutionError(
                f"Key {key_id} is not the current authentication key of {did}"
            )

        entry = details.public_keys.get(key_hash)
        if entry is None:
            raise DIDResolutionError(f"Key {key_id} not found in DID {did}")
        if entry.verification_key is None:
            raise DIDResolutionError(f"Key {key_id} is not a verification key")
        return entry.verification_key

    async def get_attestation(self, root_hash: bytes) -> Attestation | None:
        """Look up the attestation of a root hash."""
        raw = await self.get_storage(storage_key("Attestation", "Attestations", root_hash))
        if raw is None:
            return None

        try:
            details = decode_attestation_details(raw)
        except ScaleDecodeError as e:
            raise ChainLookupError(f"Could not decode attestation: {e}") from e

        return Attestation(
            root_hash=hex_encode(root_hash),
            ctype_hash=hex_encode(details.ctype_hash),
            attester=encode_did(details.attester),
            revoked=details.revoked,
            authorization_id=(
                hex_encode(details.authorization_id)
                if details.authorization_id is not None
                else None
            ),
        )

    def clear_cache(self) -> None:
        """Clear the DID cache."""
        self._cache.clear()

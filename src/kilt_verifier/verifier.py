"""
KILT Credential Verifier.

Verifies a presented KILT credential in four stages, stopping at the first
failure:

1. Claim integrity: disclosed contents match the salted claim hashes
2. Root hash: the claim hashes combine into the declared root hash
3. Signature: the owner signed the root hash with their authentication key
4. Attestation: a trusted issuer attested the root hash and did not revoke it
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Collection, Mapping
from typing import Any, Awaitable, TypeVar

from kilt_verifier.attestation import check_attestation
from kilt_verifier.chain import Attestation, ChainClient, ChainLookupError
from kilt_verifier.claims import check_claim_contents, check_root_hash
from kilt_verifier.config import DEFAULT_TRUSTED_ISSUERS, VerifierConfig
from kilt_verifier.credential import Credential, MalformedCredentialError
from kilt_verifier.did import DIDResolutionError
from kilt_verifier.hashing import hex_decode
from kilt_verifier.kilt import KiltChainClient
from kilt_verifier.results import (
    Failure,
    FailureReason,
    Stage,
    StageCheck,
    VerificationResult,
)
from kilt_verifier.signature import verify_claimer_signature

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CredentialVerifier:
    """KILT credential verifier.

    A verifier holds no per-credential state; one instance can verify many
    credentials concurrently.
    """

    def __init__(
        self,
        chain: ChainClient | None = None,
        trusted_issuers: Collection[str] = DEFAULT_TRUSTED_ISSUERS,
        timeout: float = 30.0,
        check_signature: bool = True,
        check_attestation: bool = True,
        max_workers: int | None = None,
    ) -> None:
        """Initialize the verifier.

        Args:
            chain: Chain client. A KiltChainClient is created if not provided
                and a chain stage is enabled.
            trusted_issuers: DIDs of the accepted attesters.
            timeout: Timeout in seconds for each chain lookup.
            check_signature: Whether to verify the claimer signature.
            check_attestation: Whether to check the on-chain attestation.
            max_workers: Thread pool size for statement hashing.
        """
        if chain is None and (check_signature or check_attestation):
            chain = KiltChainClient(timeout=timeout)
        self.chain = chain
        self.trusted_issuers = frozenset(trusted_issuers)
        self.timeout = timeout
        self.check_signature = check_signature
        self.check_attestation = check_attestation
        self.max_workers = max_workers

    @classmethod
    def from_config(cls, config: VerifierConfig, **kwargs: Any) -> CredentialVerifier:
        """Create a verifier backed by a KiltChainClient for the given config."""
        kwargs.setdefault(
            "chain",
            KiltChainClient(
                endpoint=config.endpoint,
                timeout=config.timeout,
                verify_ssl=config.verify_ssl,
            ),
        )
        return cls(
            trusted_issuers=config.trusted_issuers,
            timeout=config.timeout,
            **kwargs,
        )

    async def verify(
        self, credential: Mapping[str, Any] | Credential
    ) -> VerificationResult:
        """Verify a KILT credential.

        Args:
            credential: The decoded credential JSON, or a parsed Credential.

        Returns:
            VerificationResult naming the failed stage and reason, if any,
            with a diagnostic entry for every stage that ran.
        """
        checks: list[StageCheck] = []

        if isinstance(credential, Credential):
            parsed = credential
        else:
            try:
                parsed = Credential.from_dict(credential)
            except MalformedCredentialError as e:
                return self._failed(
                    Failure(Stage.STRUCTURE, FailureReason.MALFORMED_CREDENTIAL, str(e)),
                    checks,
                )
        checks.append(StageCheck(Stage.STRUCTURE, True, "Credential is well-formed"))

        result = VerificationResult(
            verified=False,
            owner=parsed.claim.owner,
            root_hash=parsed.root_hash,
        )

        failure = check_claim_contents(parsed, self.max_workers)
        if failure:
            return self._failed(failure, checks, result)
        checks.append(StageCheck(
            Stage.CLAIM_INTEGRITY,
            True,
            f"{len(parsed.claim.contents) + 1} statements match claim hashes",
        ))

        failure = check_root_hash(parsed)
        if failure:
            return self._failed(failure, checks, result)
        checks.append(StageCheck(Stage.ROOT_HASH, True, "Root hash matches claim hashes"))

        if self.check_signature:
            failure = await self._check_signature(parsed)
            if failure:
                return self._failed(failure, checks, result)
            checks.append(StageCheck(
                Stage.SIGNATURE,
                True,
                f"Signed by {parsed.claimer_signature.key_id}",
            ))

        if self.check_attestation:
            failure, attestation = await self._check_attestation(parsed)
            if attestation is not None:
                result.attester = attestation.attester
            if failure:
                return self._failed(failure, checks, result)
            checks.append(StageCheck(
                Stage.ATTESTATION,
                True,
                f"Attested by {result.attester}",
            ))

        result.verified = True
        result.checks = checks
        logger.info("Credential %s verified", parsed.root_hash)
        return result

    async def _lookup(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self.timeout)

    async def _check_signature(self, credential: Credential) -> Failure | None:
        """Resolve the owner's authentication key and verify the signature."""
        owner = credential.claim.owner
        claimer = credential.claimer_signature

        if claimer.did != owner:
            return Failure(
                Stage.SIGNATURE,
                FailureReason.KEY_RESOLUTION_FAILED,
                f"Signing key {claimer.key_id} does not belong to owner {owner}",
            )

        try:
            key = await self._lookup(
                self.chain.resolve_authentication_key(owner, claimer.key_id)
            )
        except DIDResolutionError as e:
            return Failure(
                Stage.SIGNATURE,
                FailureReason.KEY_RESOLUTION_FAILED,
                f"Key resolution failed: {e}",
            )
        except (ChainLookupError, asyncio.TimeoutError) as e:
            logger.warning("Key lookup for %s failed: %r", claimer.key_id, e)
            return Failure(
                Stage.SIGNATURE,
                FailureReason.EXTERNAL_LOOKUP_FAILED,
                f"Key lookup failed: {str(e) or 'timed out'}",
            )

        if not verify_claimer_signature(credential.root_hash, claimer.signature, key):
            return Failure(
                Stage.SIGNATURE,
                FailureReason.INVALID_SIGNATURE,
                f"Invalid {key.key_type.value} signature over root hash",
            )
        return None

    async def _check_attestation(
        self, credential: Credential
    ) -> tuple[Failure | None, Attestation | None]:
        """Look up the attestation of the root hash and apply the trust policy."""
        try:
            attestation = await self._lookup(
                self.chain.get_attestation(hex_decode(credential.root_hash))
            )
        except (ChainLookupError, asyncio.TimeoutError) as e:
            logger.warning("Attestation lookup for %s failed: %r", credential.root_hash, e)
            return Failure(
                Stage.ATTESTATION,
                FailureReason.EXTERNAL_LOOKUP_FAILED,
                f"Attestation lookup failed: {str(e) or 'timed out'}",
            ), None

        return check_attestation(attestation, self.trusted_issuers), attestation

    def _failed(
        self,
        failure: Failure,
        checks: list[StageCheck],
        result: VerificationResult | None = None,
    ) -> VerificationResult:
        checks.append(StageCheck(failure.stage, False, failure.message))
        logger.info(
            "Verification failed at %s: %s (%s)",
            failure.stage.value,
            failure.reason.value,
            failure.message,
        )
        result = result or VerificationResult(verified=False)
        result.verified = False
        result.stage = failure.stage
        result.reason = failure.reason
        result.message = failure.message
        result.checks = checks
        return result


def verify_credential(
    credential: Mapping[str, Any],
    chain: ChainClient | None = None,
    trusted_issuers: Collection[str] = DEFAULT_TRUSTED_ISSUERS,
    **kwargs: Any,
) -> VerificationResult:
    """Convenience function to verify a credential synchronously.

    Args:
        credential: The decoded credential JSON.
        chain: Chain client; a KiltChainClient is used if not provided.
        trusted_issuers: DIDs of the accepted attesters.
        **kwargs: Further CredentialVerifier options.

    Returns:
        VerificationResult with details of all checks.
    """
    verifier = CredentialVerifier(chain=chain, trusted_issuers=trusted_issuers, **kwargs)
    return asyncio.run(verifier.verify(credential))

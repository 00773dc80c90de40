"""
Attestation policy.

A credential is only trusted if its root hash was attested on chain by a
trusted issuer and the attestation has not been revoked.
"""

from __future__ import annotations

from collections.abc import Collection

from kilt_verifier.chain import Attestation
from kilt_verifier.results import Failure, FailureReason, Stage


def check_attestation(
    attestation: Attestation | None,
    trusted_issuers: Collection[str],
) -> Failure | None:
    """Apply the attestation policy to a looked-up attestation.

    Args:
        attestation: The on-chain attestation, or None if not found.
        trusted_issuers: DIDs of the accepted attesters.

    Returns:
        None if the attestation is acceptable, otherwise the failure.
    """
    if attestation is None:
        return Failure(
            stage=Stage.ATTESTATION,
            reason=FailureReason.NOT_ATTESTED,
            message="Root hash is not attested on chain",
        )

    if attestation.revoked:
        return Failure(
            stage=Stage.ATTESTATION,
            reason=FailureReason.REVOKED,
            message=f"Attestation by {attestation.attester} has been revoked",
        )

    if attestation.attester not in trusted_issuers:
        return Failure(
            stage=Stage.ATTESTATION,
            reason=FailureReason.UNTRUSTED_ISSUER,
            message=f"Attester {attestation.attester} is not a trusted issuer",
        )

    return None

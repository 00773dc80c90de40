"""
Claim integrity checks.

Recomputes every disclosed statement hash of a credential and checks it
against the declared claim hashes and root hash.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from kilt_verifier.canonical import canonicalize_claim
from kilt_verifier.credential import Credential
from kilt_verifier.hashing import root_hash, unsalted_hash
from kilt_verifier.hashing import salted_hash as compute_salted_hash
from kilt_verifier.results import Failure, FailureReason, Stage

logger = logging.getLogger(__name__)


def statement_hashes(
    credential: Credential,
    max_workers: int | None = None,
) -> list[tuple[str, str]]:
    """Compute the unsalted hash of every disclosed statement.

    Args:
        credential: The credential to hash.
        max_workers: Hash on a thread pool of this size. Sequential if None.

    Returns:
        ``(label, unsalted_hash)`` pairs, owner first.
    """
    claim = credential.claim
    statements = canonicalize_claim(claim.owner, claim.ctype_hash, claim.contents)
    labels = [label for label, _ in statements]
    texts = [text for _, text in statements]

    if max_workers and len(texts) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            hashes = list(pool.map(unsalted_hash, texts))
    else:
        hashes = [unsalted_hash(text) for text in texts]

    return list(zip(labels, hashes))


def check_claim_contents(
    credential: Credential,
    max_workers: int | None = None,
) -> Failure | None:
    """Check all disclosed contents against the declared claim hashes.

    Every statement needs a nonce, and its salted hash must be listed in
    ``claimHashes``. Extra claim hashes belong to undisclosed fields and
    are accepted.

    Args:
        credential: The credential to check.
        max_workers: Optional thread pool size for statement hashing.

    Returns:
        None if all statements are accounted for, otherwise the failure.
    """
    declared = {h.lower() for h in credential.claim_hashes}

    try:
        hashed = statement_hashes(credential, max_workers)
    except (TypeError, ValueError) as e:
        return Failure(
            stage=Stage.CLAIM_INTEGRITY,
            reason=FailureReason.MALFORMED_CREDENTIAL,
            message=f"Claim contents cannot be canonicalized: {e}",
        )

    for label, digest in hashed:
        nonce = credential.claim_nonce_map.get(digest)
        if nonce is None:
            return Failure(
                stage=Stage.CLAIM_INTEGRITY,
                reason=FailureReason.MISSING_NONCE,
                message=f"No nonce for statement '{label}' ({digest})",
            )

        salted = compute_salted_hash(nonce, digest)
        if salted not in declared:
            return Failure(
                stage=Stage.CLAIM_INTEGRITY,
                reason=FailureReason.UNMATCHED_CLAIM_HASH,
                message=f"Salted hash of statement '{label}' is not in claimHashes",
            )
        logger.debug("Statement %s matches %s", label, salted)

    return None


def check_root_hash(credential: Credential) -> Failure | None:
    """Check that the claim hashes combine into the declared root hash."""
    computed = root_hash(credential.claim_hashes)
    if computed != credential.root_hash.lower():
        return Failure(
            stage=Stage.ROOT_HASH,
            reason=FailureReason.ROOT_HASH_MISMATCH,
            message=f"Root hash mismatch: declared {credential.root_hash}, computed {computed}",
        )
    return None

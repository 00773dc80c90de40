"""
Verification outcomes.

A verification either succeeds or fails at exactly one stage with one
specific reason. Stage functions return ``None`` on success or a
:class:`Failure`; the orchestrator folds them into a
:class:`VerificationResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Stage(Enum):
    """Verification stages, in execution order."""

    STRUCTURE = "structure"
    CLAIM_INTEGRITY = "claim_integrity"
    ROOT_HASH = "root_hash"
    SIGNATURE = "signature"
    ATTESTATION = "attestation"


class FailureReason(Enum):
    """Why a credential did not verify."""

    MALFORMED_CREDENTIAL = "malformed_credential"
    MISSING_NONCE = "missing_nonce"
    UNMATCHED_CLAIM_HASH = "unmatched_claim_hash"
    ROOT_HASH_MISMATCH = "root_hash_mismatch"
    KEY_RESOLUTION_FAILED = "key_resolution_failed"
    INVALID_SIGNATURE = "invalid_signature"
    EXTERNAL_LOOKUP_FAILED = "external_lookup_failed"
    NOT_ATTESTED = "not_attested"
    REVOKED = "revoked"
    UNTRUSTED_ISSUER = "untrusted_issuer"


@dataclass(frozen=True)
class Failure:
    """A failed stage."""

    stage: Stage
    reason: FailureReason
    message: str


@dataclass(frozen=True)
class StageCheck:
    """Diagnostic record of one executed stage."""

    stage: Stage
    passed: bool
    detail: str


@dataclass
class VerificationResult:
    """Complete verification result."""

    verified: bool
    stage: Stage | None = None
    reason: FailureReason | None = None
    message: str = ""
    checks: list[StageCheck] = field(default_factory=list)
    owner: str | None = None
    root_hash: str | None = None
    attester: str | None = None

    @property
    def retryable(self) -> bool:
        """Whether the failure may be transient (chain lookup trouble)."""
        return self.reason is FailureReason.EXTERNAL_LOOKUP_FAILED

    def to_dict(self) -> dict:
        return {
            "verified": self.verified,
            "stage": self.stage.value if self.stage else None,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "retryable": self.retryable,
            "owner": self.owner,
            "root_hash": self.root_hash,
            "attester": self.attester,
            "checks": [
                {"stage": c.stage.value, "passed": c.passed, "detail": c.detail}
                for c in self.checks
            ],
        }

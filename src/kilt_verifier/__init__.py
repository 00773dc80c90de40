"""
KILT Verifier - KILT credential verification library.

Supports:
- Claim integrity (blake2b-256 salted claim hashes and root hash)
- Claimer signatures with sr25519, ed25519 and ecdsa DID keys
- On-chain attestation and revocation checks via KILT node RPC
- Trusted issuer policy
"""

from kilt_verifier.verifier import CredentialVerifier, verify_credential
from kilt_verifier.results import (
    FailureReason,
    Stage,
    StageCheck,
    VerificationResult,
)
from kilt_verifier.credential import Credential, MalformedCredentialError
from kilt_verifier.chain import (
    Attestation,
    ChainClient,
    ChainLookupError,
    KeyType,
    VerificationKey,
)
from kilt_verifier.config import VerifierConfig
from kilt_verifier.did import DIDResolutionError
from kilt_verifier.kilt import KiltChainClient

__version__ = "0.1.0"

__all__ = [
    "CredentialVerifier",
    "verify_credential",
    "VerificationResult",
    "FailureReason",
    "Stage",
    "StageCheck",
    "Credential",
    "MalformedCredentialError",
    "Attestation",
    "ChainClient",
    "ChainLookupError",
    "KeyType",
    "VerificationKey",
    "VerifierConfig",
    "DIDResolutionError",
    "KiltChainClient",
]

"""
Verifier configuration.

Values come from constructor arguments or from ``KILT_VERIFIER_*``
environment variables. Both paths are validated by pydantic, so a
misspelled flag or a non-positive timeout fails at startup.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from kilt_verifier.kilt import DEFAULT_ENDPOINT

# socialkyc.io
DEFAULT_TRUSTED_ISSUERS = frozenset(
    {"did:kilt:4pnfkRn5UurBJTW92d9TaVLR2CqJdY4z5HPjrEbpGyBykare"}
)

ENV_PREFIX = "KILT_VERIFIER_"


def parse_issuers(value: str) -> frozenset[str]:
    """Parse a comma-separated list of issuer DIDs."""
    return frozenset(item.strip() for item in value.split(",") if item.strip())


class VerifierConfig(BaseModel):
    """Settings for verifying against a KILT chain."""

    endpoint: str = Field(
        DEFAULT_ENDPOINT,
        min_length=1,
        description="KILT node JSON-RPC endpoint",
    )

    trusted_issuers: frozenset[str] = Field(
        DEFAULT_TRUSTED_ISSUERS,
        description="DIDs of the accepted attesters",
    )

    timeout: float = Field(
        30.0,
        gt=0,
        description="Timeout in seconds for each chain lookup",
    )

    verify_ssl: bool = Field(
        True,
        description="Verify the node's TLS certificate",
    )

    model_config = {
        "frozen": True,
    }

    @field_validator("trusted_issuers", mode="before")
    @classmethod
    def split_issuer_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_issuers(v)
        return v

    @field_validator("trusted_issuers")
    @classmethod
    def issuers_are_dids(cls, v: frozenset[str]) -> frozenset[str]:
        for issuer in v:
            if not issuer.startswith("did:"):
                raise ValueError(f"Trusted issuer is not a DID: {issuer!r}")
        return v

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> VerifierConfig:
        """Build a configuration from environment variables.

        Reads ``KILT_VERIFIER_ENDPOINT``, ``KILT_VERIFIER_TRUSTED_ISSUERS``
        (comma-separated), ``KILT_VERIFIER_TIMEOUT`` and
        ``KILT_VERIFIER_VERIFY_SSL``. Unset variables keep their defaults.

        Raises:
            pydantic.ValidationError: If a value is invalid. It is a
                ``ValueError`` subclass.
        """
        env = os.environ if environ is None else environ
        values = {
            name: env[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in env
        }
        return cls(**values)

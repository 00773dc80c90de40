"""
Canonical statements for KILT claims.

A claim is hashed field by field. The owner becomes ``{"@id":"<did>"}`` and
every top-level content entry becomes
``{"kilt:ctype:<cTypeHash>#<field>":<value>}``.
"""

from __future__ import annotations

import json
from typing import Any

CTYPE_PREFIX = "kilt:ctype:"
OWNER_KEY = "@id"


def _dumps(data: dict[str, Any]) -> str:
    # Minimal JSON, insertion order kept, non-ASCII left unescaped
    return json.dumps(
        data, separators=(",", ":"), ensure_ascii=False, allow_nan=False
    )


def canonicalize_owner(owner: str) -> str:
    """Render the claim owner statement."""
    return _dumps({OWNER_KEY: owner})


def canonicalize_field(ctype_hash: str, name: str, value: Any) -> str:
    """Render a single content field statement."""
    return _dumps({f"{CTYPE_PREFIX}{ctype_hash}#{name}": value})


def canonicalize_claim(
    owner: str,
    ctype_hash: str,
    contents: dict[str, Any],
) -> list[tuple[str, str]]:
    """Render all statements of a claim.

    Args:
        owner: The claim owner DID.
        ctype_hash: The claim type hash.
        contents: The disclosed claim contents.

    Returns:
        ``(label, statement)`` pairs, owner first, then one per field in
        contents order. The owner's label is ``@id``.

    Raises:
        TypeError: If a value has no JSON encoding.
        ValueError: If a value is a non-finite float.
    """
    statements = [(OWNER_KEY, canonicalize_owner(owner))]
    for name, value in contents.items():
        statements.append((name, canonicalize_field(ctype_hash, name, value)))
    return statements

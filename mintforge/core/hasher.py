"""Canonical hashing helpers for identities, transaction ids and fingerprints.

All identities on the ledger are blake2b digests:
- 28 bytes (224 bit) for key hashes and script hashes,
- 32 bytes (256 bit) for transaction ids,
- 20 bytes (160 bit) for CIP-14 asset fingerprints.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from pycardano.crypto.bech32 import encode as bech32_encode


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes: deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def blake2b_224(data: bytes) -> bytes:
    """Return the 28-byte blake2b digest used for key and script hashes."""
    return hashlib.blake2b(data, digest_size=28).digest()


def blake2b_256(data: bytes) -> bytes:
    """Return the 32-byte blake2b digest used for transaction ids."""
    return hashlib.blake2b(data, digest_size=32).digest()


def compute_transaction_id(body: dict[str, Any]) -> str:
    """Hex transaction id of a transition body (canonical JSON, blake2b-256)."""
    return blake2b_256(canonical_json_bytes(body)).hex()


def asset_fingerprint(policy_id: str, asset_name: str) -> str:
    """CIP-14 fingerprint (``asset1...``) of a policy id / asset name pair.

    Both arguments are hex strings.
    """
    digest = hashlib.blake2b(
        bytes.fromhex(policy_id) + bytes.fromhex(asset_name), digest_size=20
    ).digest()
    return bech32_encode("asset", digest)

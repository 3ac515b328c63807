"""Tests for canonical hashing, transaction ids and asset fingerprints."""

from __future__ import annotations

from mintforge.core.hasher import (
    asset_fingerprint,
    blake2b_224,
    canonical_json_bytes,
    compute_transaction_id,
)


class TestCanonicalJson:
    def test_key_order_does_not_matter(self):
        assert canonical_json_bytes({"b": 1, "a": 2}) == canonical_json_bytes({"a": 2, "b": 1})

    def test_compact(self):
        assert canonical_json_bytes({"a": [1, 2]}) == b'{"a":[1,2]}'


class TestDigests:
    def test_key_hash_size(self):
        assert len(blake2b_224(b"key")) == 28

    def test_transaction_id_is_32_bytes_hex(self):
        tx_id = compute_transaction_id({"inputs": []})
        assert len(bytes.fromhex(tx_id)) == 32

    def test_transaction_id_is_deterministic(self):
        body = {"inputs": [], "outputs": [{"address": "a"}]}
        assert compute_transaction_id(body) == compute_transaction_id(dict(body))


class TestFingerprint:
    def test_reference_vector(self):
        fingerprint = asset_fingerprint(
            "7eae28af2208be856f7a119668ae52a49b73725e326dc16579dcc373", ""
        )
        assert fingerprint == "asset1rjklcrnsdzqp65wjgrg55sy9723kw09mlgvlc3"

    def test_asset_name_changes_fingerprint(self):
        policy = "ab" * 28
        assert asset_fingerprint(policy, "01") != asset_fingerprint(policy, "02")
        assert asset_fingerprint(policy, "01").startswith("asset1")

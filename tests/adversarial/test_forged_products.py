"""Adversarial tests: forged CreateProduct transitions and Product spends.

Every Product must come from an authorized Factory spend that appends its
id at the tail, keeps the marker in place, and locks exactly one NFT at the
derived Product address.  A Product, once created, can never be spent.
"""

from __future__ import annotations

import pytest

from mintforge.bridge.crypto_bridge import OwnerKey
from mintforge.core.codec import encode_create_product, encode_factory_state
from mintforge.core.errors import LedgerSubmissionRejected
from mintforge.models.config import DiscoveryStrategy, ProtocolConfig, ProvenanceRule
from mintforge.models.ledger import LOVELACE, asset_unit
from mintforge.models.transition import MintEntry, Transition, TxInput, TxOutput


def _with_output(tx: Transition, index: int, **update) -> Transition:
    outputs = list(tx.outputs)
    outputs[index] = outputs[index].model_copy(update=update)
    return tx.model_copy(update={"outputs": outputs})


@pytest.fixture
def owner(owner_key: OwnerKey) -> bytes:
    return owner_key.key_hash


def _build(stack, owner: bytes, marker: bytes, product_id: bytes) -> Transition:
    snapshot = stack.factories.fetch_state(owner, marker)
    return stack.factories.build_create_product(owner, snapshot, product_id, b"tag")


class TestForgedCreateProduct:
    def test_stranger_cannot_spawn(self, stack, owner, marker):
        attacker = OwnerKey.generate()
        forged = _build(stack, owner, marker, b"p1").model_copy(
            update={"required_signer": attacker.key_hash.hex()}
        )
        with pytest.raises(LedgerSubmissionRejected, match="owner signature missing"):
            stack.ledger.submit(attacker.sign(forged))

    def test_list_cannot_drop_entries(self, stack, owner_key: OwnerKey, owner, marker):
        stack.factories.create_product(owner, marker, b"p1", b"t", owner_key)
        forged = _with_output(
            _build(stack, owner, marker, b"p2"), 0, datum=encode_factory_state([b"p2"])
        )
        with pytest.raises(LedgerSubmissionRejected, match="extended at the tail"):
            stack.ledger.submit(owner_key.sign(forged))
        assert stack.factories.fetch_state(owner, marker).product_ids == [b"p1"]

    def test_list_cannot_be_reordered(self, stack, owner_key: OwnerKey, owner, marker):
        stack.factories.create_product(owner, marker, b"p1", b"t", owner_key)
        forged = _with_output(
            _build(stack, owner, marker, b"p2"), 0, datum=encode_factory_state([b"p2", b"p1"])
        )
        with pytest.raises(LedgerSubmissionRejected, match="extended at the tail"):
            stack.ledger.submit(owner_key.sign(forged))

    def test_duplicate_bypassing_the_client_check(self, stack, owner_key: OwnerKey, owner, marker):
        stack.factories.create_product(owner, marker, b"p1", b"t", owner_key)
        stale = stack.factories.fetch_state(owner, marker).model_copy(update={"products": []})
        forged = stack.factories.build_create_product(owner, stale, b"p1", b"again")
        with pytest.raises(LedgerSubmissionRejected, match="already exists"):
            stack.ledger.submit(owner_key.sign(forged))
        assert stack.factories.products.read_tag(owner, marker, b"p1") == b"t"

    def test_marker_cannot_leave_the_factory(self, stack, owner_key: OwnerKey, owner, marker):
        tx = _build(stack, owner, marker, b"p1")
        wallet = stack.derivation.key_address(owner)
        marker_unit = stack.factories.marker_unit(marker)
        forged = _with_output(tx, 0, assets={})
        forged = forged.model_copy(
            update={"outputs": [*forged.outputs, TxOutput(address=wallet, assets={marker_unit: 1})]}
        )
        with pytest.raises(LedgerSubmissionRejected, match="marker must stay"):
            stack.ledger.submit(owner_key.sign(forged))

    def test_nft_must_reach_the_product_address(self, stack, owner_key: OwnerKey, owner, marker):
        wallet = stack.derivation.key_address(owner)
        forged = _with_output(_build(stack, owner, marker, b"p1"), 1, address=wallet)
        with pytest.raises(LedgerSubmissionRejected, match="product NFT must be locked"):
            stack.ledger.submit(owner_key.sign(forged))

    def test_mint_without_factory_spend(self, stack, owner_key: OwnerKey, owner, marker):
        wallet = stack.derivation.key_address(owner)
        funds = stack.fund(owner_key, 3)
        factory = stack.derivation.factory(owner, marker)
        product = stack.derivation.product(owner, marker, b"rogue")
        forged = Transition(
            inputs=[TxInput(ref=funds)],
            mints=[
                MintEntry(
                    policy_id=factory.script_hash,
                    asset_name=b"rogue".hex(),
                    quantity=1,
                    script=factory.script,
                    redeemer=encode_create_product(marker, b"rogue"),
                )
            ],
            outputs=[
                TxOutput(address=wallet, assets={LOVELACE: 3}),
                TxOutput(
                    address=product.address,
                    assets={asset_unit(factory.script_hash, b"rogue".hex()): 1},
                ),
            ],
            required_signer=owner.hex(),
        )
        with pytest.raises(LedgerSubmissionRejected, match="factory state must be spent"):
            stack.ledger.submit(owner_key.sign(forged))

    def test_script_witness_must_match_address(self, stack, owner_key: OwnerKey, owner, marker):
        tx = _build(stack, owner, marker, b"p1")
        wrong = stack.derivation.product(owner, marker, b"p1").script
        forged = tx.model_copy(
            update={"inputs": [tx.inputs[0].model_copy(update={"script": wrong})]}
        )
        with pytest.raises(LedgerSubmissionRejected, match="does not match its address"):
            stack.ledger.submit(owner_key.sign(forged))

    def test_factory_policy_cannot_mint_under_product_rule(self, make_stack, owner_key: OwnerKey):
        stack = make_stack(
            ProtocolConfig(provenance=ProvenanceRule.PRODUCT, discovery=DiscoveryStrategy.REGISTRY)
        )
        owner = owner_key.key_hash
        created = stack.factories.create_factory(owner, owner_key, stack.fund(owner_key))
        marker = bytes.fromhex(created.marker_policy_id)
        tx = _build(stack, owner, marker, b"p1")

        factory = stack.derivation.factory(owner, marker)
        mint = tx.mints[0].model_copy(
            update={"policy_id": factory.script_hash, "script": factory.script}
        )
        forged = _with_output(
            tx.model_copy(update={"mints": [mint]}),
            1,
            assets={asset_unit(factory.script_hash, b"p1".hex()): 1},
        )
        with pytest.raises(LedgerSubmissionRejected, match="product provenance rule"):
            stack.ledger.submit(owner_key.sign(forged))


class TestProductSpend:
    def test_product_state_is_immutable(self, stack, owner_key: OwnerKey, owner, marker):
        stack.factories.create_product(owner, marker, b"p1", b"original", owner_key)
        products = stack.factories.products
        state = products.fetch_state(owner, marker, b"p1")
        wallet = stack.derivation.key_address(owner)
        spend = Transition(
            inputs=[
                TxInput(
                    ref=state.ref,
                    script=products.scripts(owner, marker, b"p1").script,
                    redeemer=encode_create_product(marker, b"p1"),
                )
            ],
            outputs=[TxOutput(address=wallet, assets=dict(state.assets))],
            required_signer=owner.hex(),
        )
        with pytest.raises(LedgerSubmissionRejected, match="immutable"):
            stack.ledger.submit(owner_key.sign(spend))
        assert products.read_tag(owner, marker, b"p1") == b"original"

    def test_spend_without_script_witness(self, stack, owner_key: OwnerKey, owner, marker):
        stack.factories.create_product(owner, marker, b"p1", b"t", owner_key)
        state = stack.factories.products.fetch_state(owner, marker, b"p1")
        spend = Transition(
            inputs=[TxInput(ref=state.ref)],
            outputs=[TxOutput(address="addr_test1x", assets=dict(state.assets))],
            required_signer=owner.hex(),
        )
        with pytest.raises(LedgerSubmissionRejected, match="carries no script"):
            stack.ledger.submit(owner_key.sign(spend))

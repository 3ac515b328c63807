"""Tests for ProductProtocol: creation parts, state lookup and tags."""

from __future__ import annotations

import pytest

from mintforge.bridge.crypto_bridge import OwnerKey
from mintforge.core.errors import ResourceNotFound
from mintforge.models.config import DiscoveryStrategy, ProtocolConfig, ProvenanceRule
from mintforge.models.product import ProductPhase


class TestReadTag:
    def test_tag_is_stored(self, stack, owner_key: OwnerKey, marker):
        owner = owner_key.key_hash
        stack.factories.create_product(owner, marker, b"firefly-002", b"organic-honey", owner_key)
        assert stack.factories.products.read_tag(owner, marker, b"firefly-002") == b"organic-honey"

    def test_empty_tag(self, stack, owner_key: OwnerKey, marker):
        owner = owner_key.key_hash
        stack.factories.create_product(owner, marker, b"blank", b"", owner_key)
        assert stack.factories.products.read_tag(owner, marker, b"blank") == b""

    def test_long_tag(self, stack, owner_key: OwnerKey, marker):
        owner = owner_key.key_hash
        tag = b"organic-honey " * 20
        stack.factories.create_product(owner, marker, b"long", tag, owner_key)
        assert stack.factories.products.read_tag(owner, marker, b"long") == tag
        assert stack.factories.fetch_state(owner, marker).product_ids == [b"long"]

    def test_unknown_product(self, stack, owner_key: OwnerKey, marker):
        with pytest.raises(ResourceNotFound, match="Product state not found"):
            stack.factories.products.read_tag(owner_key.key_hash, marker, b"nobody")

    def test_phase(self, stack, owner_key: OwnerKey, marker):
        owner = owner_key.key_hash
        products = stack.factories.products
        assert products.phase(owner, marker, b"p") is ProductPhase.NON_EXISTENT
        stack.factories.create_product(owner, marker, b"p", b"t", owner_key)
        assert products.phase(owner, marker, b"p") is ProductPhase.CREATED

    def test_state_holds_the_nft(self, stack, owner_key: OwnerKey, marker):
        owner = owner_key.key_hash
        products = stack.factories.products
        stack.factories.create_product(owner, marker, b"p", b"t", owner_key)
        utxo = products.fetch_state(owner, marker, b"p")
        assert utxo.address == products.scripts(owner, marker, b"p").address
        assert utxo.quantity(products.nft_unit(owner, marker, b"p")) == 1


class TestProvenanceRules:
    def test_factory_rule_mints_under_factory(self, stack, owner_key: OwnerKey, marker):
        owner = owner_key.key_hash
        mint, output = stack.factories.products.creation_parts(owner, marker, b"p", b"t")
        factory = stack.derivation.factory(owner, marker)
        assert mint.policy_id == factory.script_hash
        assert mint.script == factory.script
        assert output.address == stack.derivation.product(owner, marker, b"p").address

    def test_product_rule_mints_under_product(self, make_stack, owner_key: OwnerKey):
        stack = make_stack(
            ProtocolConfig(provenance=ProvenanceRule.PRODUCT, discovery=DiscoveryStrategy.REGISTRY)
        )
        owner = owner_key.key_hash
        created = stack.factories.create_factory(owner, owner_key, stack.fund(owner_key))
        marker = bytes.fromhex(created.marker_policy_id)

        product = stack.derivation.product(owner, marker, b"p")
        mint, _ = stack.factories.products.creation_parts(owner, marker, b"p", b"t")
        assert mint.policy_id == product.script_hash

        result = stack.factories.create_product(owner, marker, b"p", b"tagged", owner_key)
        assert result.nft_policy_id == product.script_hash
        assert stack.factories.products.read_tag(owner, marker, b"p") == b"tagged"

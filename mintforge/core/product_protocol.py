"""Product lifecycle: NonExistent -> Created (terminal).

A Product is created inside a Factory's CreateProduct transition; this
module contributes that transition's product parts (the NFT mint and the
ProductState output) and reads Product state back by re-deriving its
address.  There is no update or removal transition.
"""

from __future__ import annotations

import logging

from mintforge.core.codec import (
    check_asset_name,
    decode_product_state,
    encode_create_product,
    encode_product_state,
)
from mintforge.core.derivation import AddressDerivation
from mintforge.core.errors import ResourceNotFound
from mintforge.core.validators import product_nft_policy
from mintforge.ledger.gateway import LedgerGateway
from mintforge.models.config import ProvenanceRule
from mintforge.models.ledger import Utxo, asset_unit
from mintforge.models.product import ProductPhase
from mintforge.models.scripts import DerivedScript
from mintforge.models.transition import MintEntry, TxOutput

logger = logging.getLogger(__name__)


class ProductProtocol:
    """Builds Product creation parts and reads Product state.

    Parameters
    ----------
    gateway:
        Ledger queried for ProductState outputs.
    derivation:
        Re-derives every Product identity and address.
    """

    def __init__(self, gateway: LedgerGateway, derivation: AddressDerivation) -> None:
        self._gateway = gateway
        self._derivation = derivation

    def scripts(self, owner: bytes, marker: bytes, product_id: bytes) -> DerivedScript:
        """ProductIdentity and address of ``(owner, marker, product_id)``."""
        check_asset_name(product_id, "product id")
        return self._derivation.product(owner, marker, product_id)

    def nft_policy(self, owner: bytes, marker: bytes, product_id: bytes) -> str:
        return product_nft_policy(self._derivation, owner, marker, product_id)

    def nft_unit(self, owner: bytes, marker: bytes, product_id: bytes) -> str:
        return asset_unit(self.nft_policy(owner, marker, product_id), product_id.hex())

    def creation_parts(
        self, owner: bytes, marker: bytes, product_id: bytes, tag: bytes
    ) -> tuple[MintEntry, TxOutput]:
        """The NFT mint and the ProductState output of a CreateProduct."""
        product = self.scripts(owner, marker, product_id)
        if self._derivation.config.provenance is ProvenanceRule.PRODUCT:
            authority = product
        else:
            authority = self._derivation.factory(owner, marker)

        mint = MintEntry(
            policy_id=authority.script_hash,
            asset_name=product_id.hex(),
            quantity=1,
            script=authority.script,
            redeemer=encode_create_product(marker, product_id),
        )
        output = TxOutput(
            address=product.address,
            assets={asset_unit(authority.script_hash, product_id.hex()): 1},
            datum=encode_product_state(tag),
        )
        return mint, output

    def fetch_state(self, owner: bytes, marker: bytes, product_id: bytes) -> Utxo:
        """The ProductState output: the one at the Product address holding its NFT."""
        product = self.scripts(owner, marker, product_id)
        unit = self.nft_unit(owner, marker, product_id)
        for utxo in self._gateway.fetch_utxos(product.address):
            if utxo.quantity(unit) == 1:
                return utxo
        raise ResourceNotFound(
            f"Product state not found for {product_id.hex()} at {product.address}"
        )

    def read_tag(self, owner: bytes, marker: bytes, product_id: bytes) -> bytes:
        return decode_product_state(self.fetch_state(owner, marker, product_id).datum)

    def phase(self, owner: bytes, marker: bytes, product_id: bytes) -> ProductPhase:
        try:
            self.fetch_state(owner, marker, product_id)
        except ResourceNotFound:
            return ProductPhase.NON_EXISTENT
        return ProductPhase.CREATED

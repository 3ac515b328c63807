"""Factory lifecycle: Absent -> Initialized -> Active(n products).

CreateFactory consumes a one-shot seed owned by the caller, mints the
Factory marker under a policy bound to that seed, and locks the marker with
an empty product list at the Factory address.  CreateProduct consumes the
current FactoryState, re-locks it with the product id appended at the tail,
and creates the Product.

Nothing here retries: a contention loss at the ledger surfaces as a
retryable ``LedgerSubmissionRejected`` and the caller decides what to do.
"""

from __future__ import annotations

import logging

from mintforge.bridge.crypto_bridge import OwnerKey
from mintforge.core.codec import (
    check_asset_name,
    decode_factory_state,
    encode_create_product,
    encode_factory_state,
    encode_mint_marker,
)
from mintforge.core.derivation import AddressDerivation
from mintforge.core.errors import (
    AuthorizationFailed,
    DuplicateProductId,
    LedgerSubmissionRejected,
    ResourceNotFound,
    SeedAlreadySpent,
)
from mintforge.core.product_protocol import ProductProtocol
from mintforge.ledger.gateway import LedgerGateway
from mintforge.models.factory import (
    FactoryCreated,
    FactoryPhase,
    FactoryScripts,
    FactorySnapshot,
)
from mintforge.models.identity import OutputRef
from mintforge.models.ledger import Utxo, asset_unit
from mintforge.models.product import ProductCreated
from mintforge.models.transition import MintEntry, Transition, TxInput, TxOutput

logger = logging.getLogger(__name__)


class FactoryProtocol:
    """Creates Factories and spawns Products from them.

    Parameters
    ----------
    gateway:
        Ledger used to resolve state and submit transitions.
    derivation:
        Derives every identity and address from its parameters.
    products:
        Product half of CreateProduct; built from the same gateway and
        derivation when omitted.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        derivation: AddressDerivation,
        products: ProductProtocol | None = None,
    ) -> None:
        self._gateway = gateway
        self._derivation = derivation
        self._products = products or ProductProtocol(gateway, derivation)

    @property
    def products(self) -> ProductProtocol:
        return self._products

    def scripts(
        self, owner: bytes, marker: bytes, seed: OutputRef | None = None
    ) -> FactoryScripts:
        return FactoryScripts(
            owner=owner.hex(),
            marker_policy_id=marker.hex(),
            factory=self._derivation.factory(owner, marker),
            marker=self._derivation.factory_marker(owner, seed) if seed else None,
        )

    def marker_unit(self, marker: bytes) -> str:
        return asset_unit(marker.hex(), self._derivation.config.marker_asset_name_hex)

    @staticmethod
    def _check_signer(owner: bytes, signer: OwnerKey | None) -> OwnerKey:
        if signer is None:
            raise AuthorizationFailed("owner signature missing")
        if signer.key_hash != owner:
            raise AuthorizationFailed(
                f"signing key {signer.key_hash.hex()} is not owner {owner.hex()}"
            )
        return signer

    # ------------------------------------------------------------------
    # CreateFactory
    # ------------------------------------------------------------------

    def build_create_factory(self, owner: bytes, seed: Utxo) -> Transition:
        """Unsigned CreateFactory transition consuming *seed*."""
        marker = self._derivation.factory_marker(owner, seed.ref)
        factory = self._derivation.factory(owner, marker.hash_bytes)
        marker_name = self._derivation.config.marker_asset_name_hex

        outputs = [
            TxOutput(
                address=factory.address,
                assets={self.marker_unit(marker.hash_bytes): 1},
                datum=encode_factory_state([]),
            )
        ]
        if seed.assets:
            outputs.append(TxOutput(address=seed.address, assets=dict(seed.assets)))

        return Transition(
            inputs=[TxInput(ref=seed.ref)],
            mints=[
                MintEntry(
                    policy_id=marker.script_hash,
                    asset_name=marker_name,
                    quantity=1,
                    script=marker.script,
                    redeemer=encode_mint_marker(),
                )
            ],
            outputs=outputs,
            required_signer=owner.hex(),
        )

    def _resolve_seed(self, owner: bytes, seed_ref: OutputRef | None) -> Utxo:
        wallet = self._derivation.key_address(owner)
        if seed_ref is None:
            available = self._gateway.fetch_utxos(wallet)
            if not available:
                raise ResourceNotFound(f"Owner wallet {wallet} has no output to seed a factory")
            return available[0]

        seed = self._gateway.fetch_utxo(seed_ref)
        if seed is None:
            if self._gateway.is_spent(seed_ref):
                raise SeedAlreadySpent(str(seed_ref))
            raise ResourceNotFound(f"Seed {seed_ref} does not exist")
        if seed.address != wallet:
            raise AuthorizationFailed(f"Seed {seed_ref} is not held by the owner")
        return seed

    def create_factory(
        self,
        owner: bytes,
        signer: OwnerKey | None,
        seed_ref: OutputRef | None = None,
    ) -> FactoryCreated:
        """Create a Factory seeded by *seed_ref* (the first wallet output if None)."""
        signer = self._check_signer(owner, signer)
        seed = self._resolve_seed(owner, seed_ref)

        marker = self._derivation.factory_marker(owner, seed.ref)
        if next(iter(self._gateway.list_policy_assets(marker.script_hash)), None) is not None:
            raise SeedAlreadySpent(str(seed.ref), "factory marker already minted")

        transition = signer.sign(self.build_create_factory(owner, seed))
        try:
            tx_id = self._gateway.submit(transition)
        except LedgerSubmissionRejected as exc:
            if exc.retryable:
                raise SeedAlreadySpent(str(seed.ref), exc.reason) from exc
            raise

        factory = self._derivation.factory(owner, marker.hash_bytes)
        logger.info("Created factory %s (marker %s)", factory.script_hash, marker.script_hash)
        return FactoryCreated(
            tx_id=tx_id,
            owner=owner.hex(),
            seed=seed.ref,
            marker_policy_id=marker.script_hash,
            factory_script_hash=factory.script_hash,
            factory_address=factory.address,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def fetch_state(self, owner: bytes, marker: bytes) -> FactorySnapshot:
        """The current FactoryState output: the one holding the marker."""
        scripts = self.scripts(owner, marker)
        unit = self.marker_unit(marker)
        holding = [
            u for u in self._gateway.fetch_utxos(scripts.factory.address)
            if u.quantity(unit) == 1
        ]
        if not holding:
            raise ResourceNotFound(
                f"Factory state not found at {scripts.factory.address}"
            )
        utxo = holding[0]
        products = decode_factory_state(utxo.datum)
        return FactorySnapshot(
            scripts=scripts, utxo=utxo, products=[p.hex() for p in products]
        )

    def phase(self, owner: bytes, marker: bytes) -> FactoryPhase:
        try:
            return self.fetch_state(owner, marker).phase
        except ResourceNotFound:
            return FactoryPhase.ABSENT

    # ------------------------------------------------------------------
    # CreateProduct
    # ------------------------------------------------------------------

    def build_create_product(
        self, owner: bytes, snapshot: FactorySnapshot, product_id: bytes, tag: bytes
    ) -> Transition:
        """Unsigned CreateProduct transition against *snapshot*."""
        check_asset_name(product_id, "product id")
        listed = snapshot.product_ids
        if product_id in listed:
            raise DuplicateProductId(product_id)

        marker = bytes.fromhex(snapshot.scripts.marker_policy_id)
        if snapshot.utxo.quantity(self.marker_unit(marker)) != 1:
            raise ResourceNotFound("Factory state does not hold the marker")

        factory = snapshot.scripts.factory
        mint, product_output = self._products.creation_parts(owner, marker, product_id, tag)
        return Transition(
            inputs=[
                TxInput(
                    ref=snapshot.utxo.ref,
                    script=factory.script,
                    redeemer=encode_create_product(marker, product_id),
                )
            ],
            mints=[mint],
            outputs=[
                TxOutput(
                    address=factory.address,
                    assets=dict(snapshot.utxo.assets),
                    datum=encode_factory_state([*listed, product_id]),
                ),
                product_output,
            ],
            required_signer=owner.hex(),
        )

    def create_product(
        self,
        owner: bytes,
        marker: bytes,
        product_id: bytes,
        tag: bytes,
        signer: OwnerKey | None,
    ) -> ProductCreated:
        """Spawn Product *product_id* with *tag* from the Factory of ``(owner, marker)``."""
        signer = self._check_signer(owner, signer)
        snapshot = self.fetch_state(owner, marker)
        transition = signer.sign(
            self.build_create_product(owner, snapshot, product_id, tag)
        )
        tx_id = self._gateway.submit(transition)

        product = self._products.scripts(owner, marker, product_id)
        products = [*snapshot.products, product_id.hex()]
        logger.info(
            "Created product %s in factory %s (%d total)",
            product_id.hex(), snapshot.scripts.factory.script_hash, len(products),
        )
        return ProductCreated(
            tx_id=tx_id,
            product_id=product_id.hex(),
            product_identity=product.script_hash,
            product_address=product.address,
            nft_policy_id=self._products.nft_policy(owner, marker, product_id),
            products=products,
        )

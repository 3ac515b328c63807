"""Product discovery — two interchangeable strategies behind one interface.

RegistryDiscovery
    Reads the FactoryState product list and re-derives every listed
    Product, keeping only those whose ProductState is present.
MintProvenanceDiscovery
    Lists every asset ever minted under the Factory's own policy; each
    asset name is a ProductId and its presence is the proof of provenance.
    Only meaningful when Product NFTs are minted under the Factory policy.

Both yield ``ProductListing`` values lazily.  Registry order is creation
order; mint-provenance order is whatever the ledger's asset index returns.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator

from mintforge.core.derivation import AddressDerivation
from mintforge.core.errors import ResourceNotFound
from mintforge.core.factory_protocol import FactoryProtocol
from mintforge.core.hasher import asset_fingerprint
from mintforge.ledger.gateway import LedgerGateway
from mintforge.models.config import DiscoveryStrategy, ProvenanceRule
from mintforge.models.product import ProductListing

logger = logging.getLogger(__name__)


class DiscoveryEngine(ABC):
    """Reconstructs the live Product set of a Factory.

    Parameters
    ----------
    gateway:
        Ledger queried for state and minted assets.
    factories:
        Factory protocol (and through it the Product protocol) used to
        re-derive identities.
    """

    strategy: DiscoveryStrategy

    def __init__(self, gateway: LedgerGateway, factories: FactoryProtocol) -> None:
        self._gateway = gateway
        self._factories = factories

    @abstractmethod
    def iter_products(self, owner: bytes, marker: bytes) -> Iterator[ProductListing]:
        """Lazily yield the Products of the Factory ``(owner, marker)``."""

    def list_products(self, owner: bytes, marker: bytes) -> list[ProductListing]:
        return list(self.iter_products(owner, marker))

    def _listing(self, owner: bytes, marker: bytes, product_id: bytes) -> ProductListing:
        products = self._factories.products
        product = products.scripts(owner, marker, product_id)
        policy = products.nft_policy(owner, marker, product_id)
        return ProductListing(
            product_id=product_id.hex(),
            product_identity=product.script_hash,
            address=product.address,
            policy_id=policy,
            fingerprint=asset_fingerprint(policy, product_id.hex()),
        )


class RegistryDiscovery(DiscoveryEngine):
    strategy = DiscoveryStrategy.REGISTRY

    def iter_products(self, owner: bytes, marker: bytes) -> Iterator[ProductListing]:
        snapshot = self._factories.fetch_state(owner, marker)
        for product_id in snapshot.product_ids:
            try:
                self._factories.products.fetch_state(owner, marker, product_id)
            except ResourceNotFound:
                logger.warning(
                    "Registry lists product %s but no product state exists; skipping",
                    product_id.hex(),
                )
                continue
            yield self._listing(owner, marker, product_id)


class MintProvenanceDiscovery(DiscoveryEngine):
    strategy = DiscoveryStrategy.MINT_PROVENANCE

    def __init__(
        self,
        gateway: LedgerGateway,
        factories: FactoryProtocol,
        derivation: AddressDerivation,
    ) -> None:
        if derivation.config.provenance is not ProvenanceRule.FACTORY:
            raise ValueError(
                "mint-provenance discovery needs product NFTs minted under the "
                "factory policy (provenance rule 'factory')"
            )
        super().__init__(gateway, factories)
        self._derivation = derivation

    def iter_products(self, owner: bytes, marker: bytes) -> Iterator[ProductListing]:
        policy = self._derivation.factory(owner, marker).script_hash
        for asset in self._gateway.list_policy_assets(policy):
            yield self._listing(owner, marker, bytes.fromhex(asset.asset_name))


def create_discovery(
    strategy: DiscoveryStrategy,
    gateway: LedgerGateway,
    factories: FactoryProtocol,
    derivation: AddressDerivation,
) -> DiscoveryEngine:
    """Build the discovery engine for *strategy*."""
    if strategy is DiscoveryStrategy.REGISTRY:
        return RegistryDiscovery(gateway, factories)
    return MintProvenanceDiscovery(gateway, factories, derivation)

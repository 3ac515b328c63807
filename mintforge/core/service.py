"""FactoryService — wires blueprint, derivation, ledger and protocols.

The service is what the CLI talks to: it builds every component from one
``MintforgeSettings`` and exposes the command surface (create a Factory,
spawn a Product, list Products, read a tag, inspect a Factory).
"""

from __future__ import annotations

import logging

from mintforge.bridge.crypto_bridge import OwnerKey
from mintforge.config import MintforgeSettings
from mintforge.core.blueprint import TemplateLookup
from mintforge.core.derivation import AddressDerivation
from mintforge.core.discovery import DiscoveryEngine, create_discovery
from mintforge.core.factory_protocol import FactoryProtocol
from mintforge.core.validators import ValidatorRules
from mintforge.ledger.gateway import LedgerGateway
from mintforge.ledger.local_ledger import LocalLedger
from mintforge.models.config import ProtocolConfig
from mintforge.models.factory import FactoryCreated, FactorySnapshot
from mintforge.models.identity import OutputRef
from mintforge.models.ledger import LOVELACE
from mintforge.models.product import ProductCreated, ProductListing

logger = logging.getLogger(__name__)


class FactoryService:
    """Factory / Product operations for one owner key.

    Parameters
    ----------
    settings:
        Runtime settings. Uses defaults (and MINTFORGE_* env) if not provided.
    gateway:
        Ledger to use instead of the local SQLite ledger at
        ``settings.ledger_path``.
    """

    def __init__(
        self,
        settings: MintforgeSettings | None = None,
        *,
        gateway: LedgerGateway | None = None,
    ) -> None:
        self.settings = settings or MintforgeSettings()
        self.config: ProtocolConfig = self.settings.protocol()

        self.templates = TemplateLookup.from_path(self.settings.blueprint_path)
        self.derivation = AddressDerivation(self.templates, self.config)
        self.rules = ValidatorRules(self.derivation)
        self.gateway: LedgerGateway = gateway or LocalLedger(
            self.settings.ledger_path, self.rules
        )
        self.factories = FactoryProtocol(self.gateway, self.derivation)
        self.discovery: DiscoveryEngine = create_discovery(
            self.config.discovery, self.gateway, self.factories, self.derivation
        )

    # ------------------------------------------------------------------
    # Keys and wallet
    # ------------------------------------------------------------------

    def load_key(self) -> OwnerKey:
        """Load the owner key from ``settings.key_path``."""
        if not self.settings.key_path.exists():
            raise FileNotFoundError(
                f"No owner key at {self.settings.key_path}; run `mintforge keygen` first"
            )
        return OwnerKey.load(self.settings.key_path)

    def wallet_address(self, key: OwnerKey) -> str:
        return self.derivation.key_address(key.key_hash)

    def fund(self, key: OwnerKey, lovelace: int) -> OutputRef:
        """Create a wallet output for *key* on the local ledger."""
        if not isinstance(self.gateway, LocalLedger):
            raise TypeError("funding is only possible on the local ledger")
        return self.gateway.fund(self.wallet_address(key), {LOVELACE: lovelace})

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_factory(
        self, key: OwnerKey, seed: OutputRef | None = None
    ) -> FactoryCreated:
        return self.factories.create_factory(key.key_hash, key, seed)

    def create_product(
        self, key: OwnerKey, marker: bytes, product_id: bytes, tag: bytes
    ) -> ProductCreated:
        return self.factories.create_product(key.key_hash, marker, product_id, tag, key)

    def get_products(self, owner: bytes, marker: bytes) -> list[ProductListing]:
        return self.discovery.list_products(owner, marker)

    def get_tag(self, owner: bytes, marker: bytes, product_id: bytes) -> bytes:
        return self.factories.products.read_tag(owner, marker, product_id)

    def get_factory(self, owner: bytes, marker: bytes) -> FactorySnapshot:
        return self.factories.fetch_state(owner, marker)

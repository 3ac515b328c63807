"""Shared test fixtures for Mintforge."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import pytest

from mintforge.bridge.crypto_bridge import OwnerKey
from mintforge.core.blueprint import TemplateLookup
from mintforge.core.derivation import AddressDerivation
from mintforge.core.discovery import DiscoveryEngine, create_discovery
from mintforge.core.factory_protocol import FactoryProtocol
from mintforge.core.validators import ValidatorRules
from mintforge.ledger.local_ledger import LocalLedger
from mintforge.models.config import ProtocolConfig
from mintforge.models.factory import FactoryCreated
from mintforge.models.identity import OutputRef
from mintforge.models.ledger import LOVELACE


@dataclass
class Stack:
    """Every protocol component wired over one temp ledger."""

    config: ProtocolConfig
    derivation: AddressDerivation
    rules: ValidatorRules
    ledger: LocalLedger
    factories: FactoryProtocol
    discovery: DiscoveryEngine

    def fund(self, key: OwnerKey, lovelace: int = 10_000_000) -> OutputRef:
        return self.ledger.fund(self.derivation.key_address(key.key_hash), {LOVELACE: lovelace})


@pytest.fixture(scope="session")
def templates() -> TemplateLookup:
    """The bundled validator blueprint."""
    return TemplateLookup.from_path()


@pytest.fixture
def config() -> ProtocolConfig:
    return ProtocolConfig()


@pytest.fixture
def derivation(templates: TemplateLookup, config: ProtocolConfig) -> AddressDerivation:
    return AddressDerivation(templates, config)


@pytest.fixture
def make_stack(tmp_path: Path, templates: TemplateLookup) -> Callable[..., Stack]:
    """Build a Stack for a given ProtocolConfig, each on its own database."""
    counter = {"n": 0}

    def _make(config: ProtocolConfig | None = None) -> Stack:
        config = config or ProtocolConfig()
        counter["n"] += 1
        derivation = AddressDerivation(templates, config)
        rules = ValidatorRules(derivation)
        ledger = LocalLedger(tmp_path / f"ledger-{counter['n']}.db", rules)
        factories = FactoryProtocol(ledger, derivation)
        discovery = create_discovery(config.discovery, ledger, factories, derivation)
        return Stack(config, derivation, rules, ledger, factories, discovery)

    return _make


@pytest.fixture
def stack(make_stack: Callable[..., Stack]) -> Stack:
    """Default stack: Factory-policy provenance, mint-provenance discovery."""
    return make_stack()


@pytest.fixture
def owner_key() -> OwnerKey:
    return OwnerKey.generate()


@pytest.fixture
def seed(stack: Stack, owner_key: OwnerKey) -> OutputRef:
    """A funded wallet output of the owner."""
    return stack.fund(owner_key)


@pytest.fixture
def factory(stack: Stack, owner_key: OwnerKey, seed: OutputRef) -> FactoryCreated:
    """A freshly created Factory."""
    return stack.factories.create_factory(owner_key.key_hash, owner_key, seed)


@pytest.fixture
def marker(factory: FactoryCreated) -> bytes:
    return bytes.fromhex(factory.marker_policy_id)

"""Mintforge data models — all Pydantic v2, all frozen (immutable)."""

from mintforge.models.config import DiscoveryStrategy, ProtocolConfig, ProvenanceRule
from mintforge.models.factory import (
    FactoryCreated,
    FactoryPhase,
    FactoryScripts,
    FactorySnapshot,
)
from mintforge.models.identity import OutputRef
from mintforge.models.ledger import LOVELACE, PolicyAsset, Utxo, asset_unit
from mintforge.models.product import ProductCreated, ProductListing, ProductPhase
from mintforge.models.scripts import DerivedScript, ParamKind, ValidatorTemplate
from mintforge.models.transition import (
    MintEntry,
    Transition,
    TxInput,
    TxOutput,
    VkeyWitness,
)

__all__ = [
    # config
    "DiscoveryStrategy",
    "ProtocolConfig",
    "ProvenanceRule",
    # identity
    "OutputRef",
    # ledger
    "LOVELACE",
    "PolicyAsset",
    "Utxo",
    "asset_unit",
    # scripts
    "DerivedScript",
    "ParamKind",
    "ValidatorTemplate",
    # transitions
    "MintEntry",
    "Transition",
    "TxInput",
    "TxOutput",
    "VkeyWitness",
    # factory
    "FactoryCreated",
    "FactoryPhase",
    "FactoryScripts",
    "FactorySnapshot",
    # product
    "ProductCreated",
    "ProductListing",
    "ProductPhase",
]

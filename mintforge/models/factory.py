"""Factory lifecycle models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from mintforge.models.identity import OutputRef
from mintforge.models.ledger import Utxo
from mintforge.models.scripts import DerivedScript


class FactoryPhase(str, Enum):
    """Absent -> Initialized -> Active(n products)."""

    ABSENT = "absent"
    INITIALIZED = "initialized"
    ACTIVE = "active"


class FactoryScripts(BaseModel):
    """The Factory's derived scripts for one (owner, marker) pair."""

    model_config = ConfigDict(frozen=True)

    owner: str
    marker_policy_id: str
    factory: DerivedScript
    marker: DerivedScript | None = None  # only known when the seed is known


class FactorySnapshot(BaseModel):
    """The current FactoryState output and its decoded product list."""

    model_config = ConfigDict(frozen=True)

    scripts: FactoryScripts
    utxo: Utxo
    products: list[str] = []  # product ids, hex, in creation order

    @property
    def phase(self) -> FactoryPhase:
        return FactoryPhase.ACTIVE if self.products else FactoryPhase.INITIALIZED

    @property
    def product_ids(self) -> list[bytes]:
        return [bytes.fromhex(p) for p in self.products]


class FactoryCreated(BaseModel):
    """Result of a committed CreateFactory transition."""

    model_config = ConfigDict(frozen=True)

    tx_id: str
    owner: str
    seed: OutputRef
    marker_policy_id: str
    factory_script_hash: str
    factory_address: str

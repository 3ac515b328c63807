"""Transition description consumed by a ledger gateway.

A transition names every output it consumes, every asset it mints (with the
specialized script authorizing the mint), every output it produces, and the
key hash that must sign it.  Witnesses are attached after the body is built;
they are not part of the transaction id.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mintforge.core.hasher import canonical_json_bytes, compute_transaction_id
from mintforge.models.identity import OutputRef


class TxInput(BaseModel):
    """An output to consume, with the script witness when it is script-locked."""

    model_config = ConfigDict(frozen=True)

    ref: OutputRef
    script: str | None = None  # specialized script, hex
    redeemer: str | None = None  # Plutus data CBOR, hex


class MintEntry(BaseModel):
    """Mint ``quantity`` units of ``policy_id`` + ``asset_name``."""

    model_config = ConfigDict(frozen=True)

    policy_id: str
    asset_name: str  # hex
    quantity: int
    script: str  # specialized minting script, hex
    redeemer: str  # Plutus data CBOR, hex


class TxOutput(BaseModel):
    """An output to produce at ``address`` with an optional inline datum."""

    model_config = ConfigDict(frozen=True)

    address: str
    assets: dict[str, int] = {}
    datum: str | None = None


class VkeyWitness(BaseModel):
    """Ed25519 verification key and signature over the transaction body."""

    model_config = ConfigDict(frozen=True)

    vkey: str
    signature: str


class Transition(BaseModel):
    """A complete, optionally signed, ledger transition."""

    model_config = ConfigDict(frozen=True)

    inputs: list[TxInput]
    mints: list[MintEntry] = []
    outputs: list[TxOutput]
    required_signer: str  # owner key hash, hex
    witnesses: list[VkeyWitness] = Field(default_factory=list)

    def body(self) -> dict[str, Any]:
        """The signed part of the transition (everything but witnesses)."""
        return self.model_dump(mode="json", exclude={"witnesses"})

    def body_bytes(self) -> bytes:
        return canonical_json_bytes(self.body())

    @property
    def tx_id(self) -> str:
        return compute_transaction_id(self.body())

    def output_ref(self, index: int) -> OutputRef:
        """Reference of the ``index``-th output once this transition commits."""
        if not 0 <= index < len(self.outputs):
            raise IndexError(f"Transition has no output {index}")
        return OutputRef(tx_id=self.tx_id, index=index)

    def minted(self, policy_id: str) -> dict[str, int]:
        """Net quantities minted under *policy_id*, keyed by asset name hex."""
        result: dict[str, int] = {}
        for entry in self.mints:
            if entry.policy_id == policy_id:
                result[entry.asset_name] = result.get(entry.asset_name, 0) + entry.quantity
        return result

    def with_witness(self, witness: VkeyWitness) -> Transition:
        return self.model_copy(update={"witnesses": [*self.witnesses, witness]})

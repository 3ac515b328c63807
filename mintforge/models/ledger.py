"""Ledger-side records: unspent outputs and minted-asset index rows."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from mintforge.models.identity import OutputRef

LOVELACE = "lovelace"


def asset_unit(policy_id: str, asset_name: str) -> str:
    """Unit key of a native asset: policy id hex followed by asset name hex."""
    return f"{policy_id}{asset_name}"


class Utxo(BaseModel):
    """An unspent transaction output.

    ``assets`` maps a unit (``lovelace`` or policy id + asset name hex) to a
    quantity.  ``datum`` is the inline datum as CBOR hex, if any.
    """

    model_config = ConfigDict(frozen=True)

    ref: OutputRef
    address: str
    assets: dict[str, int] = {}
    datum: str | None = None

    def quantity(self, unit: str) -> int:
        return self.assets.get(unit, 0)


class PolicyAsset(BaseModel):
    """One row of the minted-asset index: an asset ever minted under a policy."""

    model_config = ConfigDict(frozen=True)

    policy_id: str
    asset_name: str  # hex
    quantity: int  # net minted quantity
    fingerprint: str
    mint_tx_id: str  # transaction that first minted the asset

"""Protocol configuration threaded through every protocol component."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pycardano import Network
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

NETWORKS = ("mainnet", "preprod", "preview")


def check_network(value: str) -> str:
    if value not in NETWORKS:
        raise ValueError(f"Unknown network {value!r}; expected one of {NETWORKS}")
    return value


class ProvenanceRule(str, Enum):
    """Which script is the minting authority of Product NFTs.

    FACTORY: the Factory's own script hash mints every Product NFT, so all
    Products of a Factory share one policy and can be listed by it.
    PRODUCT: each Product's own script mints its NFT, bound to the Factory
    marker; Products can only be discovered through the registry.
    """

    FACTORY = "factory"
    PRODUCT = "product"


class DiscoveryStrategy(str, Enum):
    REGISTRY = "registry"
    MINT_PROVENANCE = "mint_provenance"


class ProtocolConfig(BaseModel):
    """Network selector, marker asset name and protocol variant choices."""

    model_config = ConfigDict(frozen=True)

    network: str = "preprod"
    marker_asset_name: str = "FACTORY_MARKER"
    provenance: ProvenanceRule = ProvenanceRule.FACTORY
    discovery: DiscoveryStrategy = DiscoveryStrategy.MINT_PROVENANCE

    @model_validator(mode="before")
    @classmethod
    def _default_discovery(cls, data: Any) -> Any:
        """An unset discovery strategy follows the provenance rule."""
        if isinstance(data, dict) and data.get("discovery") is None:
            provenance = ProvenanceRule(data.get("provenance", ProvenanceRule.FACTORY))
            data = {
                **data,
                "discovery": DiscoveryStrategy.REGISTRY
                if provenance is ProvenanceRule.PRODUCT
                else DiscoveryStrategy.MINT_PROVENANCE,
            }
        return data

    @field_validator("network")
    @classmethod
    def _check_network(cls, v: str) -> str:
        return check_network(v)

    @field_validator("marker_asset_name")
    @classmethod
    def _check_marker_name(cls, v: str) -> str:
        if not v or len(v.encode("utf-8")) > 32:
            raise ValueError("marker_asset_name must be 1..32 bytes")
        return v

    @property
    def cardano_network(self) -> Network:
        return Network.MAINNET if self.network == "mainnet" else Network.TESTNET

    @property
    def marker_asset_name_hex(self) -> str:
        return self.marker_asset_name.encode("utf-8").hex()

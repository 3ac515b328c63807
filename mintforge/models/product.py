"""Product lifecycle and discovery models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ProductPhase(str, Enum):
    """NonExistent -> Created (terminal)."""

    NON_EXISTENT = "non_existent"
    CREATED = "created"


class ProductCreated(BaseModel):
    """Result of a committed CreateProduct transition."""

    model_config = ConfigDict(frozen=True)

    tx_id: str
    product_id: str  # hex
    product_identity: str  # product script hash, hex
    product_address: str
    nft_policy_id: str
    products: list[str]  # factory product list after the append, hex


class ProductListing(BaseModel):
    """One discovered Product: id, derived identity and NFT fingerprint."""

    model_config = ConfigDict(frozen=True)

    product_id: str  # hex
    product_identity: str
    address: str
    policy_id: str
    fingerprint: str

    @property
    def product_id_bytes(self) -> bytes:
        return bytes.fromhex(self.product_id)

    @property
    def label(self) -> str:
        """Product id as text, for display."""
        return self.product_id_bytes.decode("utf-8", errors="replace")

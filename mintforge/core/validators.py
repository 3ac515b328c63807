"""On-ledger validity rules of the factory, marker and product validators.

A ledger evaluates these rules for every script witness of a transition:
each spent script-locked input and each minting policy.  The specialized
script carries its template and parameters, so the rule sees exactly the
identities the script was derived from.

Rules
-----
factory_marker / mint
    Seed consumed, owner signed, exactly one marker unit minted, marker
    locked at the derived Factory address with an empty FactoryState.
factory / spend (CreateProduct)
    Owner signed, redeemer bound to this Factory's marker, product id not
    yet listed, one continuing output with the marker and the list
    appended at the tail, one product NFT minted and locked with a
    ProductState at the derived Product address.
factory / mint
    Product NFTs under the Factory policy (provenance rule ``factory``).
product / mint
    Product NFT under the Product's own policy (provenance rule ``product``).
product / spend
    Always fails: a Product's state is never updated or removed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict

from mintforge.core.codec import (
    decode_create_product,
    decode_factory_state,
    decode_product_state,
)
from mintforge.core.derivation import FACTORY, FACTORY_MARKER, PRODUCT, AddressDerivation
from mintforge.core.errors import MintforgeError
from mintforge.models.config import ProvenanceRule
from mintforge.models.ledger import Utxo, asset_unit
from mintforge.models.transition import Transition, TxOutput

logger = logging.getLogger(__name__)


class ScriptFailure(MintforgeError):
    """Raised when a validator rejects a transition."""


class ScriptPurpose(str, Enum):
    SPEND = "spend"
    MINT = "mint"


class ScriptContext(BaseModel):
    """What a validator sees of the transition it is asked to approve."""

    model_config = ConfigDict(frozen=True)

    transition: Transition
    resolved_inputs: list[Utxo]
    signatories: frozenset[str]  # key hashes (hex) with a valid witness
    purpose: ScriptPurpose
    own_script_hash: str
    own_input: Utxo | None = None  # set for SPEND
    redeemer: str | None = None

    def signed_by(self, key_hash: bytes) -> bool:
        return key_hash.hex() in self.signatories

    def inputs_at(self, address: str) -> list[Utxo]:
        return [u for u in self.resolved_inputs if u.address == address]

    def outputs_at(self, address: str) -> list[TxOutput]:
        return [o for o in self.transition.outputs if o.address == address]


def product_nft_policy(
    derivation: AddressDerivation, owner: bytes, marker: bytes, product_id: bytes
) -> str:
    """Policy id that mints the Product NFT under the configured provenance rule."""
    if derivation.config.provenance is ProvenanceRule.PRODUCT:
        return derivation.product(owner, marker, product_id).script_hash
    return derivation.factory(owner, marker).script_hash


def _require(condition: bool, reason: str) -> None:
    if not condition:
        raise ScriptFailure(reason)


def _factory_products(datum: str | None) -> list[bytes]:
    try:
        return decode_factory_state(datum)
    except MintforgeError as exc:
        raise ScriptFailure(str(exc)) from exc


def _create_product_redeemer(redeemer: str | None) -> tuple[bytes, bytes]:
    try:
        return decode_create_product(redeemer)
    except Exception as exc:
        raise ScriptFailure(f"malformed CreateProduct redeemer: {exc}") from exc


Rule = Callable[[list, ScriptContext], None]


class ValidatorRules:
    """Evaluates specialized scripts against their template's rules.

    Parameters
    ----------
    derivation:
        Used to decode scripts and re-derive every identity a rule checks.
    """

    def __init__(self, derivation: AddressDerivation) -> None:
        self._derivation = derivation
        self._config = derivation.config
        self._rules: dict[tuple[str, ScriptPurpose], Rule] = {
            (FACTORY_MARKER, ScriptPurpose.MINT): self._mint_factory_marker,
            (FACTORY, ScriptPurpose.SPEND): self._spend_factory,
            (FACTORY, ScriptPurpose.MINT): self._mint_product_under_factory,
            (PRODUCT, ScriptPurpose.MINT): self._mint_product_under_product,
            (PRODUCT, ScriptPurpose.SPEND): self._spend_product,
        }

    def script_hash(self, script: bytes) -> str:
        return self._derivation.script_hash(script).hex()

    def evaluate(self, script: bytes, ctx: ScriptContext) -> None:
        """Run the rule for *script* in *ctx*; raise ScriptFailure on rejection."""
        try:
            template, params = self._derivation.unapply(script)
        except MintforgeError as exc:
            raise ScriptFailure(f"cannot evaluate script: {exc}") from exc

        rule = self._rules.get((template.name, ctx.purpose))
        if rule is None:
            raise ScriptFailure(f"{template.name} has no {ctx.purpose.value} validator")
        rule(params, ctx)
        logger.debug(
            "%s/%s validator accepted %s",
            template.name, ctx.purpose.value, ctx.transition.tx_id,
        )

    # ------------------------------------------------------------------
    # factory_marker
    # ------------------------------------------------------------------

    def _mint_factory_marker(self, params: list, ctx: ScriptContext) -> None:
        owner, seed = params[0].value, params[1].reference
        _require(ctx.signed_by(owner), "owner signature missing")
        _require(
            any(u.ref == seed for u in ctx.resolved_inputs),
            f"seed {seed} is not consumed",
        )
        marker_name = self._config.marker_asset_name_hex
        _require(
            ctx.transition.minted(ctx.own_script_hash) == {marker_name: 1},
            "must mint exactly one factory marker",
        )

        factory = self._derivation.factory(owner, bytes.fromhex(ctx.own_script_hash))
        unit = asset_unit(ctx.own_script_hash, marker_name)
        locked = [o for o in ctx.outputs_at(factory.address) if o.assets.get(unit) == 1]
        _require(len(locked) == 1, "marker must be locked at the factory address")
        _require(
            _factory_products(locked[0].datum) == [],
            "factory must start with an empty product list",
        )

    # ------------------------------------------------------------------
    # factory
    # ------------------------------------------------------------------

    def _spend_factory(self, params: list, ctx: ScriptContext) -> None:
        owner, marker = params[0].value, params[1].value
        _require(ctx.signed_by(owner), "owner signature missing")
        redeemer_marker, product_id = _create_product_redeemer(ctx.redeemer)
        _require(redeemer_marker == marker, "redeemer names a different factory marker")
        _require(ctx.own_input is not None, "no factory input in spend context")

        own = ctx.own_input
        marker_unit = asset_unit(marker.hex(), self._config.marker_asset_name_hex)
        _require(own.quantity(marker_unit) == 1, "factory input does not hold the marker")
        _require(len(ctx.inputs_at(own.address)) == 1, "exactly one factory input may be spent")

        listed = _factory_products(own.datum)
        _require(product_id not in listed, f"product {product_id.hex()} already exists")

        continuing = ctx.outputs_at(own.address)
        _require(len(continuing) == 1, "exactly one continuing factory output required")
        _require(
            continuing[0].assets.get(marker_unit) == 1,
            "marker must stay at the factory address",
        )
        _require(
            _factory_products(continuing[0].datum) == [*listed, product_id],
            "product list must be extended at the tail by the new product id",
        )

        product = self._derivation.product(owner, marker, product_id)
        policy = product_nft_policy(self._derivation, owner, marker, product_id)
        _require(
            ctx.transition.minted(policy) == {product_id.hex(): 1},
            "must mint exactly one product NFT",
        )
        nft = asset_unit(policy, product_id.hex())
        locked = [o for o in ctx.outputs_at(product.address) if o.assets.get(nft) == 1]
        _require(len(locked) == 1, "product NFT must be locked at the product address")
        try:
            decode_product_state(locked[0].datum)
        except MintforgeError as exc:
            raise ScriptFailure(str(exc)) from exc

    def _mint_product_under_factory(self, params: list, ctx: ScriptContext) -> None:
        _require(
            self._config.provenance is ProvenanceRule.FACTORY,
            "factory policy does not mint products under the product provenance rule",
        )
        owner, marker = params[0].value, params[1].value
        _require(ctx.signed_by(owner), "owner signature missing")
        redeemer_marker, product_id = _create_product_redeemer(ctx.redeemer)
        _require(redeemer_marker == marker, "redeemer names a different factory marker")

        factory_address = self._derivation.script_address(bytes.fromhex(ctx.own_script_hash))
        _require(len(ctx.inputs_at(factory_address)) == 1, "factory state must be spent")
        _require(
            ctx.transition.minted(ctx.own_script_hash) == {product_id.hex(): 1},
            "must mint exactly one unit named by the product id",
        )

    # ------------------------------------------------------------------
    # product
    # ------------------------------------------------------------------

    def _mint_product_under_product(self, params: list, ctx: ScriptContext) -> None:
        _require(
            self._config.provenance is ProvenanceRule.PRODUCT,
            "product policy does not mint under the factory provenance rule",
        )
        owner, marker, product_id = params[0].value, params[1].value, params[2].value
        _require(ctx.signed_by(owner), "owner signature missing")
        redeemer_marker, redeemer_product = _create_product_redeemer(ctx.redeemer)
        _require(
            (redeemer_marker, redeemer_product) == (marker, product_id),
            "redeemer does not match this product",
        )

        factory = self._derivation.factory(owner, marker)
        _require(len(ctx.inputs_at(factory.address)) == 1, "factory state must be spent")
        _require(
            ctx.transition.minted(ctx.own_script_hash) == {product_id.hex(): 1},
            "must mint exactly one product NFT",
        )

    def _spend_product(self, params: list, ctx: ScriptContext) -> None:
        raise ScriptFailure("product state is immutable: no spend transition is defined")

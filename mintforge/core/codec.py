"""Parameter and datum codec.

Typed validator parameters and the persisted datums are encoded as Plutus
data CBOR, the canonical form consumed by script specialization and stored
in outputs.  At the wire boundary (JSON) byte strings travel as hex.

Datum layout:
- FactoryState  = Constr 0 [List<ByteArray>]  (product ids, creation order)
- ProductState  = Constr 0 [ByteArray]        (tag)
- CreateProduct = Constr 0 [ByteArray marker policy, ByteArray product id]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, List, Sequence, Union

import cbor2
from pycardano import PlutusData
from pycardano.serialization import ByteString
from pydantic import BaseModel, ConfigDict, field_validator

from mintforge.core.errors import DerivationInputInvalid, ResourceNotFound
from mintforge.models.identity import OutputRef
from mintforge.models.scripts import ParamKind

SCRIPT_HASH_SIZE = 28
MAX_ASSET_NAME_SIZE = 32
MAX_BYTES_CHUNK = 64  # longer byte strings are written as indefinite-length chunks


# ---------------------------------------------------------------------------
# Plutus data shapes
# ---------------------------------------------------------------------------


@dataclass
class OutputReference(PlutusData):
    CONSTR_ID = 0
    transaction_id: bytes
    output_index: int


@dataclass
class FactoryDatum(PlutusData):
    CONSTR_ID = 0
    products: List[bytes]


@dataclass
class ProductDatum(PlutusData):
    CONSTR_ID = 0
    tag: Union[ByteString, bytes]  # decodes as ByteString, whatever the length


@dataclass
class CreateProduct(PlutusData):
    CONSTR_ID = 0
    factory_marker: bytes
    product_id: bytes


@dataclass
class MintMarker(PlutusData):
    CONSTR_ID = 0


# ---------------------------------------------------------------------------
# Typed parameters
# ---------------------------------------------------------------------------


class Parameter(BaseModel):
    """A typed validator parameter.

    Subclasses fix ``kind``; ``encode()`` yields the Plutus data CBOR used
    when the parameter is applied to a template.
    """

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[ParamKind]

    def encode(self) -> bytes:
        raise NotImplementedError


class ByteStringParam(Parameter):
    kind: ClassVar[ParamKind] = ParamKind.BYTES

    value: bytes

    def encode(self) -> bytes:
        return cbor2.dumps(self.value)


class ScriptHashParam(Parameter):
    kind: ClassVar[ParamKind] = ParamKind.SCRIPT_HASH

    value: bytes

    @field_validator("value")
    @classmethod
    def _check_size(cls, v: bytes) -> bytes:
        if len(v) != SCRIPT_HASH_SIZE:
            raise ValueError(f"script hash must be {SCRIPT_HASH_SIZE} bytes, got {len(v)}")
        return v

    @classmethod
    def from_hex(cls, value: str) -> ScriptHashParam:
        return cls(value=bytes.fromhex(value))

    def encode(self) -> bytes:
        return cbor2.dumps(self.value)


class OutputReferenceParam(Parameter):
    kind: ClassVar[ParamKind] = ParamKind.OUTPUT_REFERENCE

    reference: OutputRef

    def encode(self) -> bytes:
        return OutputReference(
            bytes.fromhex(self.reference.tx_id), self.reference.index
        ).to_cbor()


def decode_parameter(kind: ParamKind, raw: bytes) -> Parameter:
    """Inverse of ``Parameter.encode()`` for a declared *kind*."""
    try:
        if kind is ParamKind.OUTPUT_REFERENCE:
            ref = OutputReference.from_cbor(raw)
            return OutputReferenceParam(
                reference=OutputRef(tx_id=ref.transaction_id.hex(), index=ref.output_index)
            )
        value = cbor2.loads(raw)
        if not isinstance(value, bytes):
            raise ValueError(f"expected a byte string, got {type(value).__name__}")
        if kind is ParamKind.SCRIPT_HASH:
            return ScriptHashParam(value=value)
        return ByteStringParam(value=value)
    except Exception as exc:
        raise DerivationInputInvalid(f"Cannot decode {kind.value} parameter: {exc}") from exc


# ---------------------------------------------------------------------------
# Datums and redeemers
# ---------------------------------------------------------------------------


def encode_factory_state(products: Sequence[bytes]) -> str:
    return FactoryDatum(list(products)).to_cbor_hex()


def _load_factory_datum(datum: str) -> FactoryDatum:
    decoded = FactoryDatum.from_cbor(datum)
    if isinstance(decoded.products, (bytes, str)) or not all(
        isinstance(p, bytes) for p in decoded.products
    ):
        raise ValueError("products field is not a list of byte strings")
    return decoded


def _load_product_datum(datum: str) -> ProductDatum:
    decoded = ProductDatum.from_cbor(datum)
    if not isinstance(decoded.tag, (bytes, ByteString)):
        raise ValueError("tag field is not a byte string")
    return decoded


def decode_factory_state(datum: str | None) -> list[bytes]:
    """Decode a FactoryState datum into its ordered product id list."""
    if datum is None:
        raise ResourceNotFound("Factory output carries no datum")
    try:
        decoded = _load_factory_datum(datum)
    except Exception as exc:
        raise ResourceNotFound(f"Factory output datum is not a FactoryState: {exc}") from exc
    return list(decoded.products)


def encode_product_state(tag: bytes) -> str:
    if len(tag) > MAX_BYTES_CHUNK:
        return ProductDatum(ByteString(tag)).to_cbor_hex()
    return ProductDatum(tag).to_cbor_hex()


def decode_product_state(datum: str | None) -> bytes:
    """Decode a ProductState datum into its tag."""
    if datum is None:
        raise ResourceNotFound("Product datum not found")
    try:
        decoded = _load_product_datum(datum)
    except Exception as exc:
        raise ResourceNotFound(f"Product datum is not a ProductState: {exc}") from exc
    if isinstance(decoded.tag, ByteString):
        return decoded.tag.value
    return decoded.tag


def encode_create_product(marker_policy_id: bytes, product_id: bytes) -> str:
    return CreateProduct(marker_policy_id, product_id).to_cbor_hex()


def decode_create_product(redeemer: str | None) -> tuple[bytes, bytes]:
    """Return ``(marker_policy_id, product_id)`` from a CreateProduct redeemer."""
    if redeemer is None:
        raise ValueError("missing CreateProduct redeemer")
    decoded = CreateProduct.from_cbor(redeemer)
    if not isinstance(decoded.factory_marker, bytes) or not isinstance(decoded.product_id, bytes):
        raise ValueError("CreateProduct fields must be byte strings")
    return decoded.factory_marker, decoded.product_id


def encode_mint_marker() -> str:
    return MintMarker().to_cbor_hex()


def datum_to_wire(datum: str) -> dict[str, Any]:
    """Detailed-schema JSON of a Factory or Product datum (hex byte strings)."""
    for loader in (_load_product_datum, _load_factory_datum):
        try:
            return loader(datum).to_dict()
        except Exception:
            continue
    raise ValueError("Datum is neither a FactoryState nor a ProductState")


def check_asset_name(value: bytes, label: str = "asset name") -> bytes:
    """Asset names (marker name, product ids) are 1..32 bytes."""
    if not 0 < len(value) <= MAX_ASSET_NAME_SIZE:
        raise DerivationInputInvalid(
            f"{label} must be 1..{MAX_ASSET_NAME_SIZE} bytes, got {len(value)}"
        )
    return value

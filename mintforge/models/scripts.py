"""Validator templates and derived (specialized) scripts."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ParamKind(str, Enum):
    """Typed parameter shapes a validator template can declare."""

    BYTES = "bytes"
    SCRIPT_HASH = "script_hash"
    OUTPUT_REFERENCE = "output_reference"


# Blueprint (CIP-57) schema references understood by the parameter codec.
SCHEMA_REF_KINDS: dict[str, ParamKind] = {
    "#/definitions/ByteArray": ParamKind.BYTES,
    "#/definitions/aiken~1crypto~1VerificationKeyHash": ParamKind.BYTES,
    "#/definitions/VerificationKeyHash": ParamKind.BYTES,
    "#/definitions/aiken~1crypto~1ScriptHash": ParamKind.SCRIPT_HASH,
    "#/definitions/cardano~1assets~1PolicyId": ParamKind.SCRIPT_HASH,
    "#/definitions/PolicyId": ParamKind.SCRIPT_HASH,
    "#/definitions/cardano~1transaction~1OutputReference": ParamKind.OUTPUT_REFERENCE,
    "#/definitions/OutputReference": ParamKind.OUTPUT_REFERENCE,
}


class ValidatorTemplate(BaseModel):
    """A compiled, unparameterized validator from the blueprint."""

    model_config = ConfigDict(frozen=True)

    title: str  # e.g. "factory.factory.spend"
    compiled_code: str  # hex
    parameter_titles: tuple[str, ...] = ()
    parameter_kinds: tuple[ParamKind, ...] = ()

    @property
    def name(self) -> str:
        """Template name: the module part of the title (``factory``)."""
        return self.title.split(".", 1)[0]


class DerivedScript(BaseModel):
    """A template specialized with its parameters, with identity and address."""

    model_config = ConfigDict(frozen=True)

    template: str
    script: str  # specialized script bytes, hex
    script_hash: str  # 28-byte identity hash, hex
    address: str  # bech32 script address

    @property
    def hash_bytes(self) -> bytes:
        return bytes.fromhex(self.script_hash)

"""Ledger coordinates and hex-validated identity helpers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_hex(value: str, *, size: int | None = None, label: str = "value") -> str:
    """Lower-case *value* and check it is hex (of exactly *size* bytes, if given)."""
    value = value.strip().lower()
    try:
        raw = bytes.fromhex(value)
    except ValueError as exc:
        raise ValueError(f"{label} is not valid hex: {value!r}") from exc
    if size is not None and len(raw) != size:
        raise ValueError(f"{label} must be {size} bytes, got {len(raw)}")
    return value


class OutputRef(BaseModel):
    """Coordinate of a transaction output: origin transaction id + index.

    A SeedReference is an ``OutputRef`` that is consumed exactly once to
    seed a Factory.
    """

    model_config = ConfigDict(frozen=True)

    tx_id: str  # 32-byte transaction id, hex
    index: int = Field(ge=0)

    @field_validator("tx_id")
    @classmethod
    def _check_tx_id(cls, v: str) -> str:
        return normalize_hex(v, size=32, label="tx_id")

    @classmethod
    def parse(cls, text: str) -> OutputRef:
        """Parse the ``<tx_id>#<index>`` notation."""
        tx_id, sep, index = text.partition("#")
        if not sep:
            raise ValueError(f"Expected <tx_id>#<index>, got {text!r}")
        return cls(tx_id=tx_id, index=int(index))

    def __str__(self) -> str:
        return f"{self.tx_id}#{self.index}"

"""Runtime settings — env-driven.

Centralized config using pydantic-settings: reads a .env file and
MINTFORGE_* environment variables.  ``protocol()`` yields the frozen
``ProtocolConfig`` threaded through every protocol component.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mintforge.models.config import (
    DiscoveryStrategy,
    ProtocolConfig,
    ProvenanceRule,
    check_network,
)


class MintforgeSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export MINTFORGE_NETWORK=preview
        export MINTFORGE_LOG_LEVEL=DEBUG
        export MINTFORGE_LEDGER_PATH=/data/ledger.db

    Or via .env file::

        MINTFORGE_DISCOVERY=registry
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MINTFORGE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Protocol
    network: str = "preprod"
    marker_asset_name: str = "FACTORY_MARKER"
    provenance: ProvenanceRule = ProvenanceRule.FACTORY
    discovery: DiscoveryStrategy | None = None  # registry under the product rule

    # Storage paths
    blueprint_path: Path | None = None  # bundled plutus.json when unset
    ledger_path: Path = Path(".mintforge/ledger.db")
    key_path: Path = Path(".mintforge/owner.skey")

    @field_validator("network")
    @classmethod
    def _check_network(cls, v: str) -> str:
        return check_network(v)

    def protocol(self) -> ProtocolConfig:
        return ProtocolConfig(
            network=self.network,
            marker_asset_name=self.marker_asset_name,
            provenance=self.provenance,
            discovery=self.discovery,
        )

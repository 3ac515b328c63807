"""Mintforge: one-shot Factories that spawn uniquely identified Products.

A Factory is created by consuming a seed output exactly once; the marker
token minted from that seed proves the Factory is genuine.  Every Product
spawned from it lives at an address derived from (owner, marker, product
id), so its identity can be re-derived and checked by anyone:
  - Deterministic script specialization over a CIP-57 blueprint
  - Plutus data datums via pycardano
  - Ed25519 owner signatures via PyNaCl
  - SQLite-backed local ledger enforcing single-spend and validator rules
  - Registry and mint-provenance Product discovery
"""

__version__ = "0.1.0"
__description__ = "One-shot Factory / Product protocol over a UTxO ledger"

from mintforge.core.service import FactoryService
from mintforge.cli.app import app as cli

__all__ = ["FactoryService", "cli", "__version__"]

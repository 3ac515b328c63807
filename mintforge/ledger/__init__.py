"""Ledger gateways: the interface the protocol core depends on, and a
SQLite-backed local ledger that enforces the single-spend rule and the
validator rules."""

from mintforge.ledger.gateway import LedgerGateway
from mintforge.ledger.local_ledger import LocalLedger

__all__ = ["LedgerGateway", "LocalLedger"]

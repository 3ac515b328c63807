"""LedgerGateway — the narrow ledger interface the protocol core consumes.

Any object with these methods satisfies the protocol: the bundled
``LocalLedger``, or an adapter over a remote node / indexer.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from mintforge.models.identity import OutputRef
from mintforge.models.ledger import PolicyAsset, Utxo
from mintforge.models.transition import Transition


@runtime_checkable
class LedgerGateway(Protocol):
    """Submit transitions and query unspent outputs and minted assets."""

    def submit(self, transition: Transition) -> str:
        """Submit a signed transition and return its transaction id.

        Raises ``LedgerSubmissionRejected`` if the ledger refuses it; the
        error is ``retryable`` when an input was already consumed.
        """
        ...

    def fetch_utxos(self, address: str) -> list[Utxo]:
        """Return the unspent outputs currently locked at *address*."""
        ...

    def fetch_utxo(self, ref: OutputRef) -> Utxo | None:
        """Return the output at *ref* if it exists and is unspent."""
        ...

    def is_spent(self, ref: OutputRef) -> bool:
        """Return ``True`` if the output at *ref* existed and was consumed."""
        ...

    def list_policy_assets(self, policy_id: str) -> Iterator[PolicyAsset]:
        """Lazily yield every asset ever minted under *policy_id*."""
        ...

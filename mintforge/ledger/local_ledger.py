"""Single-spend UTxO ledger backed by SQLite.

The local ledger is the reference ``LedgerGateway``: it holds unspent
outputs, applies transitions atomically, and keeps a minted-asset index
that mint-provenance discovery reads.

Design:
- Each ``submit()`` runs inside one ``BEGIN IMMEDIATE`` transaction, so two
  transitions racing for the same output serialize: the loser sees the
  output spent and is rejected with ``retryable=True``.
- Spent outputs are kept (``spent_by`` is set), never deleted.
- Every script witness is evaluated against ``ValidatorRules`` before any
  row is written.
- WAL journal mode for concurrent readers.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path

from pycardano import Address, ScriptHash, VerificationKeyHash

from mintforge.bridge.crypto_bridge import key_hash, verify_data
from mintforge.core.errors import LedgerSubmissionRejected
from mintforge.core.hasher import asset_fingerprint, canonical_json_bytes, blake2b_256
from mintforge.core.validators import (
    ScriptContext,
    ScriptFailure,
    ScriptPurpose,
    ValidatorRules,
)
from mintforge.models.identity import OutputRef
from mintforge.models.ledger import PolicyAsset, Utxo, asset_unit
from mintforge.models.transition import MintEntry, Transition

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_UTXOS = """
CREATE TABLE IF NOT EXISTS utxos (
    tx_id         TEXT NOT NULL,
    output_index  INTEGER NOT NULL,
    address       TEXT NOT NULL,
    assets_json   TEXT NOT NULL DEFAULT '{}',
    datum         TEXT,
    spent_by      TEXT,
    PRIMARY KEY (tx_id, output_index)
);
"""

_CREATE_IDX_ADDRESS = """
CREATE INDEX IF NOT EXISTS idx_utxo_address ON utxos(address, spent_by);
"""

_CREATE_TRANSACTIONS = """
CREATE TABLE IF NOT EXISTS transactions (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    tx_id          TEXT NOT NULL UNIQUE,
    body_json      TEXT NOT NULL,
    timestamp_utc  TEXT NOT NULL
);
"""

_CREATE_MINTS = """
CREATE TABLE IF NOT EXISTS policy_mints (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    policy_id   TEXT NOT NULL,
    asset_name  TEXT NOT NULL,
    quantity    INTEGER NOT NULL,
    tx_id       TEXT NOT NULL
);
"""

_CREATE_IDX_POLICY = """
CREATE INDEX IF NOT EXISTS idx_policy ON policy_mints(policy_id, id);
"""


class LocalLedger:
    """SQLite-backed ledger enforcing single-spend and validator rules.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    rules:
        Validator rules evaluated for every script witness.
    """

    def __init__(self, db_path: Path, rules: ValidatorRules) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._rules = rules
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._db_path), check_same_thread=False, isolation_level=None, timeout=30.0
        )
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        conn = self._connect()
        try:
            for ddl in (
                _CREATE_UTXOS,
                _CREATE_IDX_ADDRESS,
                _CREATE_TRANSACTIONS,
                _CREATE_MINTS,
                _CREATE_IDX_POLICY,
            ):
                conn.execute(ddl)
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def fund(self, address: str, assets: dict[str, int]) -> OutputRef:
        """Create an output at *address* out of thin air (faucet / genesis).

        Returns the reference of the new output.
        """
        if not assets or any(q <= 0 for q in assets.values()):
            raise ValueError("fund() needs at least one positive asset quantity")
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            (count,) = conn.execute("SELECT COUNT(*) FROM transactions").fetchone()
            body = {"fund": {"address": address, "assets": assets}, "sequence": count}
            tx_id = blake2b_256(canonical_json_bytes(body)).hex()
            self._record_transaction(conn, tx_id, body)
            self._insert_output(conn, tx_id, 0, address, assets, None)
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()
        ref = OutputRef(tx_id=tx_id, index=0)
        logger.info("Funded %s at %s", ref, address)
        return ref

    def submit(self, transition: Transition) -> str:
        """Validate and apply *transition* atomically; return its tx id."""
        tx_id = transition.tx_id
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            resolved = self._resolve_inputs(conn, transition)
            signatories = self._check_witnesses(transition)
            self._check_input_authority(transition, resolved, signatories)
            self._check_conservation(transition, resolved)
            self._evaluate_scripts(transition, resolved, signatories)

            self._record_transaction(conn, tx_id, transition.body())
            for tx_input in transition.inputs:
                conn.execute(
                    "UPDATE utxos SET spent_by = ? WHERE tx_id = ? AND output_index = ?",
                    (tx_id, tx_input.ref.tx_id, tx_input.ref.index),
                )
            for index, output in enumerate(transition.outputs):
                self._insert_output(
                    conn, tx_id, index, output.address, output.assets, output.datum
                )
            for entry in transition.mints:
                conn.execute(
                    "INSERT INTO policy_mints (policy_id, asset_name, quantity, tx_id) "
                    "VALUES (?, ?, ?, ?)",
                    (entry.policy_id, entry.asset_name, entry.quantity, tx_id),
                )
            conn.execute("COMMIT")
        except BaseException as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            if isinstance(exc, LedgerSubmissionRejected):
                logger.warning("Rejected transition %s: %s", tx_id, exc.reason)
            raise
        finally:
            conn.close()
        logger.info(
            "Applied transition %s (%d in, %d out, %d mint)",
            tx_id, len(transition.inputs), len(transition.outputs), len(transition.mints),
        )
        return tx_id

    @staticmethod
    def _record_transaction(conn: sqlite3.Connection, tx_id: str, body: dict) -> None:
        try:
            conn.execute(
                "INSERT INTO transactions (tx_id, body_json, timestamp_utc) VALUES (?, ?, ?)",
                (tx_id, json.dumps(body, sort_keys=True), datetime.now(timezone.utc).isoformat()),
            )
        except sqlite3.IntegrityError as exc:
            raise LedgerSubmissionRejected(
                f"transaction {tx_id} already applied", retryable=True
            ) from exc

    @staticmethod
    def _insert_output(
        conn: sqlite3.Connection,
        tx_id: str,
        index: int,
        address: str,
        assets: dict[str, int],
        datum: str | None,
    ) -> None:
        conn.execute(
            "INSERT INTO utxos (tx_id, output_index, address, assets_json, datum) "
            "VALUES (?, ?, ?, ?, ?)",
            (tx_id, index, address, json.dumps(assets, sort_keys=True), datum),
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _resolve_inputs(self, conn: sqlite3.Connection, transition: Transition) -> list[Utxo]:
        if not transition.inputs:
            raise LedgerSubmissionRejected("transition consumes no inputs")
        refs = [i.ref for i in transition.inputs]
        if len(set(refs)) != len(refs):
            raise LedgerSubmissionRejected("transition consumes an input twice")

        resolved: list[Utxo] = []
        for ref in refs:
            row = conn.execute(
                "SELECT tx_id, output_index, address, assets_json, datum, spent_by "
                "FROM utxos WHERE tx_id = ? AND output_index = ?",
                (ref.tx_id, ref.index),
            ).fetchone()
            if row is None:
                raise LedgerSubmissionRejected(f"input {ref} does not exist")
            if row[5] is not None:
                raise LedgerSubmissionRejected(
                    f"input {ref} already spent by {row[5]}", retryable=True
                )
            resolved.append(self._row_to_utxo(row))
        return resolved

    @staticmethod
    def _check_witnesses(transition: Transition) -> frozenset[str]:
        body = transition.body_bytes()
        signatories: set[str] = set()
        for witness in transition.witnesses:
            if not verify_data(body, witness.signature, witness.vkey):
                raise LedgerSubmissionRejected("invalid vkey witness")
            signatories.add(key_hash(witness.vkey).hex())
        if transition.required_signer not in signatories:
            raise LedgerSubmissionRejected(
                f"required signer {transition.required_signer} did not sign"
            )
        return frozenset(signatories)

    def _check_input_authority(
        self,
        transition: Transition,
        resolved: list[Utxo],
        signatories: frozenset[str],
    ) -> None:
        for tx_input, utxo in zip(transition.inputs, resolved):
            payment = Address.from_primitive(utxo.address).payment_part
            if isinstance(payment, VerificationKeyHash):
                if payment.payload.hex() not in signatories:
                    raise LedgerSubmissionRejected(
                        f"input {utxo.ref} is not signed by its key"
                    )
            elif isinstance(payment, ScriptHash):
                if tx_input.script is None:
                    raise LedgerSubmissionRejected(
                        f"input {utxo.ref} is script-locked but carries no script"
                    )
                if self._rules.script_hash(bytes.fromhex(tx_input.script)) != payment.payload.hex():
                    raise LedgerSubmissionRejected(
                        f"script witness of {utxo.ref} does not match its address"
                    )
            else:
                raise LedgerSubmissionRejected(f"input {utxo.ref} has no payment credential")

    @staticmethod
    def _check_conservation(transition: Transition, resolved: list[Utxo]) -> None:
        balance: dict[str, int] = {}
        for utxo in resolved:
            for unit, quantity in utxo.assets.items():
                balance[unit] = balance.get(unit, 0) + quantity
        for entry in transition.mints:
            unit = asset_unit(entry.policy_id, entry.asset_name)
            balance[unit] = balance.get(unit, 0) + entry.quantity
        for output in transition.outputs:
            for unit, quantity in output.assets.items():
                if quantity <= 0:
                    raise LedgerSubmissionRejected(
                        f"output carries non-positive quantity of {unit}"
                    )
                balance[unit] = balance.get(unit, 0) - quantity
        unbalanced = {unit: q for unit, q in balance.items() if q != 0}
        if unbalanced:
            raise LedgerSubmissionRejected(f"value is not conserved: {unbalanced}")

    def _evaluate_scripts(
        self,
        transition: Transition,
        resolved: list[Utxo],
        signatories: frozenset[str],
    ) -> None:
        try:
            for policy_id, entries in self._mints_by_policy(transition).items():
                script = entries[0].script
                if any(e.script != script or e.redeemer != entries[0].redeemer for e in entries):
                    raise LedgerSubmissionRejected(
                        f"policy {policy_id} carries conflicting scripts or redeemers"
                    )
                if self._rules.script_hash(bytes.fromhex(script)) != policy_id:
                    raise LedgerSubmissionRejected(
                        f"minting script does not hash to policy {policy_id}"
                    )
                self._rules.evaluate(
                    bytes.fromhex(script),
                    ScriptContext(
                        transition=transition,
                        resolved_inputs=resolved,
                        signatories=signatories,
                        purpose=ScriptPurpose.MINT,
                        own_script_hash=policy_id,
                        redeemer=entries[0].redeemer,
                    ),
                )

            for tx_input, utxo in zip(transition.inputs, resolved):
                if tx_input.script is None:
                    continue
                script = bytes.fromhex(tx_input.script)
                self._rules.evaluate(
                    script,
                    ScriptContext(
                        transition=transition,
                        resolved_inputs=resolved,
                        signatories=signatories,
                        purpose=ScriptPurpose.SPEND,
                        own_script_hash=self._rules.script_hash(script),
                        own_input=utxo,
                        redeemer=tx_input.redeemer,
                    ),
                )
        except ScriptFailure as exc:
            raise LedgerSubmissionRejected(f"script validation failed: {exc}") from exc

    @staticmethod
    def _mints_by_policy(transition: Transition) -> dict[str, list[MintEntry]]:
        grouped: dict[str, list[MintEntry]] = {}
        for entry in transition.mints:
            grouped.setdefault(entry.policy_id, []).append(entry)
        return grouped

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def fetch_utxos(self, address: str) -> list[Utxo]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT tx_id, output_index, address, assets_json, datum, spent_by "
                "FROM utxos WHERE address = ? AND spent_by IS NULL "
                "ORDER BY rowid ASC",
                (address,),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_utxo(row) for row in rows]

    def fetch_utxo(self, ref: OutputRef) -> Utxo | None:
        row = self._fetch_row(ref)
        if row is None or row[5] is not None:
            return None
        return self._row_to_utxo(row)

    def is_spent(self, ref: OutputRef) -> bool:
        row = self._fetch_row(ref)
        return row is not None and row[5] is not None

    def list_policy_assets(self, policy_id: str) -> Iterator[PolicyAsset]:
        """Yield assets with a positive net minted quantity, in first-mint order."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                """
                SELECT asset_name, SUM(quantity), MIN(id),
                       (SELECT tx_id FROM policy_mints p2
                         WHERE p2.policy_id = p1.policy_id
                           AND p2.asset_name = p1.asset_name
                         ORDER BY id ASC LIMIT 1)
                FROM policy_mints p1
                WHERE policy_id = ?
                GROUP BY asset_name
                HAVING SUM(quantity) > 0
                ORDER BY MIN(id) ASC
                """,
                (policy_id,),
            )
            for asset_name, quantity, _first_id, mint_tx_id in cursor:
                yield PolicyAsset(
                    policy_id=policy_id,
                    asset_name=asset_name,
                    quantity=quantity,
                    fingerprint=asset_fingerprint(policy_id, asset_name),
                    mint_tx_id=mint_tx_id,
                )
        finally:
            conn.close()

    def transaction_count(self) -> int:
        conn = self._connect()
        try:
            (count,) = conn.execute("SELECT COUNT(*) FROM transactions").fetchone()
        finally:
            conn.close()
        return count

    def _fetch_row(self, ref: OutputRef) -> tuple | None:
        conn = self._connect()
        try:
            return conn.execute(
                "SELECT tx_id, output_index, address, assets_json, datum, spent_by "
                "FROM utxos WHERE tx_id = ? AND output_index = ?",
                (ref.tx_id, ref.index),
            ).fetchone()
        finally:
            conn.close()

    @staticmethod
    def _row_to_utxo(row: tuple) -> Utxo:
        return Utxo(
            ref=OutputRef(tx_id=row[0], index=row[1]),
            address=row[2],
            assets=json.loads(row[3]),
            datum=row[4],
        )

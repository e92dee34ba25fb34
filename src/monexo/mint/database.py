"""
Mint persistence on SQLite.

Holds:
- used proofs (the double-spend ledger, keyed by secret)
- proofs reserved by an in-flight melt
- issued blind signatures (promises), keyed by B_
- mint and melt quotes
- keyset metadata

All mint state changes go through ``transaction()`` so a check-then-insert
on the ledger cannot interleave with another writer.
"""

from __future__ import annotations

import logging
import sqlite3

from monexo.core.models import (
    BlindedMessage,
    BlindedSignature,
    DleqWire,
    MeltQuote,
    MeltQuoteState,
    MintQuote,
    MintQuoteState,
    Proof,
)
from monexo.core.sqlite import DatabaseError, SqliteStore, placeholders
from monexo.crypto.keyset import MintKeyset

logger = logging.getLogger("monexo.database")

# Proof amounts are stored as TEXT: 2^63 does not fit a signed SQLite INTEGER.
_SCHEMA = """
CREATE TABLE IF NOT EXISTS used_proofs (
    secret TEXT PRIMARY KEY,
    y TEXT UNIQUE NOT NULL,
    amount TEXT NOT NULL,
    keyset_id TEXT NOT NULL,
    c TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS pending_proofs (
    secret TEXT PRIMARY KEY,
    y TEXT UNIQUE NOT NULL,
    amount TEXT NOT NULL,
    keyset_id TEXT NOT NULL,
    c TEXT NOT NULL,
    quote_id TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_pending_quote ON pending_proofs(quote_id);

CREATE TABLE IF NOT EXISTS promises (
    b_ TEXT PRIMARY KEY,
    amount TEXT NOT NULL,
    keyset_id TEXT NOT NULL,
    c_ TEXT NOT NULL,
    dleq_e TEXT,
    dleq_s TEXT
);

CREATE TABLE IF NOT EXISTS mint_quotes (
    quote_id TEXT PRIMARY KEY,
    reference TEXT NOT NULL,
    amount INTEGER NOT NULL,
    fee INTEGER NOT NULL,
    expiry INTEGER NOT NULL,
    state TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS melt_quotes (
    quote_id TEXT PRIMARY KEY,
    amount INTEGER NOT NULL,
    fee INTEGER NOT NULL,
    address TEXT NOT NULL,
    reference TEXT NOT NULL,
    expiry INTEGER NOT NULL,
    state TEXT NOT NULL,
    description TEXT,
    txid TEXT
);

CREATE TABLE IF NOT EXISTS keysets (
    id TEXT PRIMARY KEY,
    unit TEXT NOT NULL,
    derivation_path TEXT NOT NULL,
    max_order INTEGER NOT NULL,
    active INTEGER NOT NULL
);
"""


class SqliteDatabase(SqliteStore):
    """
    Mint database.

    Usage:
        db = SqliteDatabase(":memory:")
        with db.transaction():
            if db.get_used_secrets(secrets):
                ...
            db.add_used_proofs(proofs)
    """

    SCHEMA = _SCHEMA
    SCHEMA_VERSION = 1

    # ------------------------------------------------------------------
    # Used proofs
    # ------------------------------------------------------------------

    def get_used_secrets(self, secrets: list[str]) -> set[str]:
        if not secrets:
            return set()
        rows = self._query(
            f"SELECT secret FROM used_proofs WHERE secret IN ({placeholders(secrets)})", secrets
        )
        return {r["secret"] for r in rows}

    def get_used_ys(self, ys: list[str]) -> set[str]:
        if not ys:
            return set()
        rows = self._query(f"SELECT y FROM used_proofs WHERE y IN ({placeholders(ys)})", ys)
        return {r["y"] for r in rows}

    def add_used_proofs(self, proofs: list[Proof]) -> None:
        try:
            self._executemany(
                "INSERT INTO used_proofs (secret, y, amount, keyset_id, c) VALUES (?, ?, ?, ?, ?)",
                [(p.secret, p.y, str(p.amount), p.id, p.C) for p in proofs],
            )
        except sqlite3.IntegrityError as e:
            raise DatabaseError(f"Proof already recorded as used: {e}") from e
        logger.debug(f"Recorded {len(proofs)} used proofs")

    def count_used_proofs(self) -> int:
        return self._query("SELECT COUNT(*) AS n FROM used_proofs")[0]["n"]

    # ------------------------------------------------------------------
    # Pending proofs (melt in flight)
    # ------------------------------------------------------------------

    def get_pending_secrets(self, secrets: list[str]) -> set[str]:
        if not secrets:
            return set()
        rows = self._query(
            f"SELECT secret FROM pending_proofs WHERE secret IN ({placeholders(secrets)})", secrets
        )
        return {r["secret"] for r in rows}

    def get_pending_ys(self, ys: list[str]) -> set[str]:
        if not ys:
            return set()
        rows = self._query(f"SELECT y FROM pending_proofs WHERE y IN ({placeholders(ys)})", ys)
        return {r["y"] for r in rows}

    def add_pending_proofs(self, proofs: list[Proof], quote_id: str) -> None:
        try:
            self._executemany(
                "INSERT INTO pending_proofs (secret, y, amount, keyset_id, c, quote_id) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [(p.secret, p.y, str(p.amount), p.id, p.C, quote_id) for p in proofs],
            )
        except sqlite3.IntegrityError as e:
            raise DatabaseError(f"Proof already pending: {e}") from e

    def get_pending_proofs(self, quote_id: str) -> list[Proof]:
        rows = self._query(
            "SELECT secret, amount, keyset_id, c FROM pending_proofs WHERE quote_id = ?", (quote_id,)
        )
        return [
            Proof(amount=int(r["amount"]), id=r["keyset_id"], secret=r["secret"], C=r["c"])
            for r in rows
        ]

    def delete_pending_proofs(self, quote_id: str) -> None:
        self._execute("DELETE FROM pending_proofs WHERE quote_id = ?", (quote_id,))

    # ------------------------------------------------------------------
    # Promises
    # ------------------------------------------------------------------

    def get_signed_outputs(self, b_s: list[str]) -> set[str]:
        if not b_s:
            return set()
        rows = self._query(f"SELECT b_ FROM promises WHERE b_ IN ({placeholders(b_s)})", b_s)
        return {r["b_"] for r in rows}

    def add_promises(self, outputs: list[BlindedMessage], signatures: list[BlindedSignature]) -> None:
        rows = []
        for output, sig in zip(outputs, signatures):
            e = sig.dleq.e if sig.dleq else None
            s = sig.dleq.s if sig.dleq else None
            rows.append((output.B_, str(sig.amount), sig.id, sig.C_, e, s))
        try:
            self._executemany(
                "INSERT INTO promises (b_, amount, keyset_id, c_, dleq_e, dleq_s) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                rows,
            )
        except sqlite3.IntegrityError as e:
            raise DatabaseError(f"Output already signed: {e}") from e

    def get_promises(self, b_s: list[str]) -> dict[str, BlindedSignature]:
        """Mapping B_ -> stored signature for every B_ the mint has signed."""
        if not b_s:
            return {}
        rows = self._query(
            f"SELECT b_, amount, keyset_id, c_, dleq_e, dleq_s FROM promises "
            f"WHERE b_ IN ({placeholders(b_s)})",
            b_s,
        )
        result = {}
        for r in rows:
            dleq = DleqWire(e=r["dleq_e"], s=r["dleq_s"]) if r["dleq_e"] else None
            result[r["b_"]] = BlindedSignature(
                amount=int(r["amount"]), id=r["keyset_id"], C_=r["c_"], dleq=dleq
            )
        return result

    # ------------------------------------------------------------------
    # Mint quotes
    # ------------------------------------------------------------------

    def add_mint_quote(self, quote: MintQuote) -> None:
        self._execute(
            "INSERT INTO mint_quotes (quote_id, reference, amount, fee, expiry, state) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (quote.quote_id, quote.reference, quote.amount, quote.fee, quote.expiry, quote.state.value),
        )

    def get_mint_quote(self, quote_id: str) -> MintQuote | None:
        rows = self._query("SELECT * FROM mint_quotes WHERE quote_id = ?", (quote_id,))
        if not rows:
            return None
        r = rows[0]
        return MintQuote(
            quote_id=r["quote_id"],
            reference=r["reference"],
            amount=r["amount"],
            fee=r["fee"],
            expiry=r["expiry"],
            state=MintQuoteState(r["state"]),
        )

    def update_mint_quote_state(self, quote_id: str, state: MintQuoteState) -> None:
        self._execute("UPDATE mint_quotes SET state = ? WHERE quote_id = ?", (state.value, quote_id))

    # ------------------------------------------------------------------
    # Melt quotes
    # ------------------------------------------------------------------

    def add_melt_quote(self, quote: MeltQuote) -> None:
        self._execute(
            "INSERT INTO melt_quotes "
            "(quote_id, amount, fee, address, reference, expiry, state, description, txid) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                quote.quote_id,
                quote.amount,
                quote.fee,
                quote.address,
                quote.reference,
                quote.expiry,
                quote.state.value,
                quote.description,
                quote.txid,
            ),
        )

    def get_melt_quote(self, quote_id: str) -> MeltQuote | None:
        rows = self._query("SELECT * FROM melt_quotes WHERE quote_id = ?", (quote_id,))
        if not rows:
            return None
        r = rows[0]
        return MeltQuote(
            quote_id=r["quote_id"],
            amount=r["amount"],
            fee=r["fee"],
            address=r["address"],
            reference=r["reference"],
            expiry=r["expiry"],
            state=MeltQuoteState(r["state"]),
            description=r["description"],
            txid=r["txid"],
        )

    def update_melt_quote(self, quote_id: str, state: MeltQuoteState, txid: str | None = None) -> None:
        self._execute(
            "UPDATE melt_quotes SET state = ?, txid = ? WHERE quote_id = ?",
            (state.value, txid, quote_id),
        )

    # ------------------------------------------------------------------
    # Keysets
    # ------------------------------------------------------------------

    def add_keyset_info(self, keyset: MintKeyset) -> None:
        self._execute(
            "INSERT INTO keysets (id, unit, derivation_path, max_order, active) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET active = excluded.active",
            (keyset.id, keyset.unit, keyset.derivation_path, keyset.max_order, int(keyset.active)),
        )

    def get_keyset_infos(self) -> list[dict]:
        rows = self._query("SELECT id, unit, derivation_path, max_order, active FROM keysets ORDER BY id")
        return [
            {
                "id": r["id"],
                "unit": r["unit"],
                "derivation_path": r["derivation_path"],
                "max_order": r["max_order"],
                "active": bool(r["active"]),
            }
            for r in rows
        ]

"""
Wallet local store on SQLite: proofs, mirrored mint keysets and the seed.
"""

from __future__ import annotations

import json
import logging

from monexo.core.models import Proof, Proofs
from monexo.core.sqlite import SqliteStore, placeholders

logger = logging.getLogger("monexo.localstore")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS proofs (
    secret TEXT PRIMARY KEY,
    amount TEXT NOT NULL,
    keyset_id TEXT NOT NULL,
    c TEXT NOT NULL,
    script TEXT
);

CREATE TABLE IF NOT EXISTS keysets (
    keyset_id TEXT PRIMARY KEY,
    mint_url TEXT NOT NULL,
    unit TEXT NOT NULL,
    active INTEGER NOT NULL,
    last_index INTEGER NOT NULL DEFAULT 0,
    public_keys TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS seed (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    seed_words TEXT NOT NULL
);
"""


class WalletKeyset:
    """
    Local mirror of a mint keyset.

    Attributes:
        keyset_id: Mint keyset id.
        mint_url: Mint the keyset belongs to.
        unit: Currency unit.
        active: Whether the mint still signs with it.
        last_index: Last derivation counter handed out; the next request
                    starts at last_index + 1.
        public_keys: amount -> compressed public key hex.
    """

    def __init__(
        self,
        keyset_id: str,
        mint_url: str,
        unit: str,
        active: bool,
        last_index: int = 0,
        public_keys: dict[int, str] | None = None,
    ) -> None:
        self.keyset_id = keyset_id
        self.mint_url = mint_url
        self.unit = unit
        self.active = active
        self.last_index = last_index
        self.public_keys = public_keys or {}

    def __repr__(self) -> str:
        return (
            f"WalletKeyset(keyset_id={self.keyset_id!r}, unit={self.unit!r}, "
            f"active={self.active}, last_index={self.last_index})"
        )


class SqliteLocalStore(SqliteStore):
    """
    Usage:
        store = SqliteLocalStore("wallet.db")
        store.add_proofs(proofs)
    """

    SCHEMA = _SCHEMA
    SCHEMA_VERSION = 1

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------

    def get_proofs(self) -> Proofs:
        rows = self._query("SELECT secret, amount, keyset_id, c, script FROM proofs ORDER BY rowid")
        return Proofs(
            Proof(amount=int(r["amount"]), id=r["keyset_id"], secret=r["secret"], C=r["c"], script=r["script"])
            for r in rows
        )

    def add_proofs(self, proofs: Proofs | list[Proof]) -> None:
        self._executemany(
            "INSERT OR IGNORE INTO proofs (secret, amount, keyset_id, c, script) VALUES (?, ?, ?, ?, ?)",
            [(p.secret, str(p.amount), p.id, p.C, p.script) for p in proofs],
        )

    def delete_proofs(self, proofs: Proofs | list[Proof]) -> None:
        secrets = [p.secret for p in proofs]
        if not secrets:
            return
        self._execute(f"DELETE FROM proofs WHERE secret IN ({placeholders(secrets)})", secrets)

    # ------------------------------------------------------------------
    # Keysets
    # ------------------------------------------------------------------

    def get_keysets(self) -> list[WalletKeyset]:
        rows = self._query("SELECT * FROM keysets ORDER BY keyset_id")
        return [
            WalletKeyset(
                keyset_id=r["keyset_id"],
                mint_url=r["mint_url"],
                unit=r["unit"],
                active=bool(r["active"]),
                last_index=r["last_index"],
                public_keys={int(k): v for k, v in json.loads(r["public_keys"]).items()},
            )
            for r in rows
        ]

    def get_keyset(self, keyset_id: str) -> WalletKeyset | None:
        for keyset in self.get_keysets():
            if keyset.keyset_id == keyset_id:
                return keyset
        return None

    def upsert_keyset(self, keyset: WalletKeyset) -> None:
        """Insert or refresh a keyset; an existing row keeps its last_index."""
        self._execute(
            "INSERT INTO keysets (keyset_id, mint_url, unit, active, last_index, public_keys) "
            "VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(keyset_id) DO UPDATE SET "
            "mint_url = excluded.mint_url, unit = excluded.unit, "
            "active = excluded.active, public_keys = excluded.public_keys",
            (
                keyset.keyset_id,
                keyset.mint_url,
                keyset.unit,
                int(keyset.active),
                keyset.last_index,
                json.dumps({str(k): v for k, v in keyset.public_keys.items()}),
            ),
        )

    def update_keyset_last_index(self, keyset_id: str, last_index: int) -> None:
        self._execute("UPDATE keysets SET last_index = ? WHERE keyset_id = ?", (last_index, keyset_id))
        logger.debug(f"Keyset {keyset_id} last_index -> {last_index}")

    # ------------------------------------------------------------------
    # Seed
    # ------------------------------------------------------------------

    def get_seed(self) -> str | None:
        rows = self._query("SELECT seed_words FROM seed WHERE id = 1")
        return rows[0]["seed_words"] if rows else None

    def add_seed(self, seed_words: str) -> None:
        self._execute("INSERT INTO seed (id, seed_words) VALUES (1, ?)", (seed_words,))

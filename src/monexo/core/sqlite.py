"""
Shared SQLite plumbing for the mint database and the wallet store.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator

logger = logging.getLogger("monexo.sqlite")


class DatabaseError(Exception):
    """Base database error."""
    pass


def placeholders(values: list) -> str:
    return ",".join("?" for _ in values)


class SqliteStore:
    """
    One shared connection guarded by a re-entrant lock.

    ``transaction()`` takes the SQLite write lock up front (``BEGIN IMMEDIATE``)
    and holds the process lock for its whole body, so methods called inside
    it join the open transaction and no other writer can interleave.

    Subclasses set SCHEMA and SCHEMA_VERSION.
    """

    SCHEMA: str = ""
    SCHEMA_VERSION: int = 1

    def __init__(self, db_path: str = ":memory:") -> None:
        self.db_path = db_path
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._in_tx = False
        self._init_schema()

    def _init_schema(self) -> None:
        with self._lock:
            row = self._conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
            ).fetchone()
            if row is None:
                self._conn.executescript(
                    "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY);\n"
                    + self.SCHEMA
                )
                self._conn.execute("INSERT INTO schema_version VALUES (?)", (self.SCHEMA_VERSION,))
                logger.info(
                    f"{type(self).__name__} initialized with schema version {self.SCHEMA_VERSION}"
                )

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Serializable write transaction. Commits on success, rolls back and
        re-raises on any exception. Nested calls join the outer transaction.
        """
        with self._lock:
            if self._in_tx:
                yield self._conn
                return
            self._conn.execute("BEGIN IMMEDIATE")
            self._in_tx = True
            try:
                yield self._conn
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")
            finally:
                self._in_tx = False

    def _query(self, sql: str, params: Iterable = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, tuple(params)).fetchall()

    def _execute(self, sql: str, params: Iterable = ()) -> None:
        with self.transaction():
            self._conn.execute(sql, tuple(params))

    def _executemany(self, sql: str, rows: list[tuple]) -> None:
        with self.transaction():
            self._conn.executemany(sql, rows)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

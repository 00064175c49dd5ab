"""
Almanac persistence layer.

Thin SQLite helpers. The administrator row and the period table are the only
durable registry state; the notification log lives beside them (see events.py)
and is written in the same transaction as the state change it reports.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Union

from .models import PeriodRecord

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RegistryStore:
    """
    Handle on one registry's SQLite file.

    ``write_lock`` serialises every mutating operation on this handle so that
    authorization, validation, the row write and the event append happen as
    one unit, and notifications leave in the order the writes committed.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.write_lock = threading.RLock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS controller (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    administrator TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS periods (
                    period_key TEXT PRIMARY KEY,
                    content_hash TEXT NOT NULL,
                    document_location TEXT NOT NULL,
                    indicator_value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Immediate write transaction. Commits on success, rolls back everything
        written inside the block on any exception.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    @contextmanager
    def reader(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    # --- Administrator ---

    def get_administrator(self, conn: Optional[sqlite3.Connection] = None) -> Optional[str]:
        if conn is None:
            with self.reader() as c:
                return self.get_administrator(c)
        row = conn.execute("SELECT administrator FROM controller WHERE id = 1").fetchone()
        return row["administrator"] if row else None

    def set_administrator(self, conn: sqlite3.Connection, address: str) -> None:
        conn.execute(
            """
            INSERT INTO controller (id, administrator, updated_at) VALUES (1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET administrator = excluded.administrator,
                                          updated_at = excluded.updated_at
            """,
            (address, _now()),
        )

    def is_deployed(self) -> bool:
        return self.get_administrator() is not None

    # --- Periods ---

    def put_record(self, conn: sqlite3.Connection, period_key: str, record: PeriodRecord) -> None:
        conn.execute(
            """
            INSERT INTO periods (period_key, content_hash, document_location, indicator_value, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(period_key) DO UPDATE SET
                content_hash = excluded.content_hash,
                document_location = excluded.document_location,
                indicator_value = excluded.indicator_value,
                updated_at = excluded.updated_at
            """,
            (
                period_key,
                record.content_hash_hex,
                record.document_location,
                str(record.indicator_value),  # may exceed SQLite's 64-bit INTEGER
                _now(),
            ),
        )

    def get_record(self, period_key: str) -> Optional[PeriodRecord]:
        """Stored record or None. A single-row SELECT: never a mix of two writes."""
        with self.reader() as conn:
            row = conn.execute(
                "SELECT content_hash, document_location, indicator_value FROM periods WHERE period_key = ?",
                (period_key,),
            ).fetchone()
        if not row:
            return None
        return PeriodRecord(
            content_hash=bytes.fromhex(row["content_hash"]),
            document_location=row["document_location"],
            indicator_value=int(row["indicator_value"]),
        )

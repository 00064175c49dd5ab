"""
Almanac Notification Log

Append-only, hash-chained record of every ControlTransferred and NewEntry
notification, plus in-process subscribers.

An event row is inserted inside the same SQLite transaction as the state change
it reports, so a rolled-back write leaves no event behind. Subscribers are
called only after that transaction commits, in commit order.
"""
from __future__ import annotations

import hashlib
import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .models import EventFilter, EventName, RegistryEvent
from .store import RegistryStore

logger = logging.getLogger(__name__)

Subscriber = Callable[[RegistryEvent], None]


def _entry_hash(entry: Dict[str, Any]) -> str:
    entry_bytes = json.dumps(entry, sort_keys=True, separators=(",", ":")).encode()
    return hashlib.sha256(entry_bytes).hexdigest()


class Subscription:
    def __init__(self, log: "EventLog", callback: Subscriber, event_filter: EventFilter):
        self._log = log
        self.callback = callback
        self.filter = event_filter

    def unsubscribe(self) -> None:
        self._log._remove(self)


class EventLog:
    """Hash-chained notification log. Every entry references the previous hash."""

    def __init__(self, store: RegistryStore):
        self.store = store
        self._subscribers: List[Subscription] = []
        self._subscribers_lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        with self.store.reader() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    name TEXT NOT NULL,
                    period_key TEXT,
                    args TEXT NOT NULL,
                    prev_hash TEXT,
                    hash TEXT NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_period ON events(period_key)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_name ON events(name)")

    # --- Writing ---

    def _get_last_hash(self, conn: sqlite3.Connection) -> Optional[str]:
        row = conn.execute("SELECT hash FROM events ORDER BY id DESC LIMIT 1").fetchone()
        return row[0] if row else None

    def append(
        self,
        conn: sqlite3.Connection,
        name: EventName,
        args: Dict[str, Any],
        period_key: Optional[str] = None,
    ) -> RegistryEvent:
        """Insert an event inside the caller's open transaction."""
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "name": name.value,
            "period_key": period_key,
            "args": args,
            "prev_hash": self._get_last_hash(conn),
        }
        entry_hash = _entry_hash(entry)
        cursor = conn.execute(
            """
            INSERT INTO events (timestamp, name, period_key, args, prev_hash, hash)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                entry["timestamp"],
                entry["name"],
                period_key,
                json.dumps(args, sort_keys=True),
                entry["prev_hash"],
                entry_hash,
            ),
        )
        return RegistryEvent(
            id=int(cursor.lastrowid),
            name=name,
            args=dict(args),
            timestamp=entry["timestamp"],
            hash=entry_hash,
            prev_hash=entry["prev_hash"],
            period_key=period_key,
        )

    # --- Subscribers ---

    def subscribe(
        self,
        callback: Subscriber,
        name: Optional[EventName] = None,
        period_key: Optional[str] = None,
        **args_filter: Any,
    ) -> Subscription:
        """
        Register ``callback`` for committed events matching the filter.

        Keyword arguments filter on event args, e.g. ``new_holder=address``.
        """
        subscription = Subscription(self, callback, EventFilter(name, period_key, args_filter))
        with self._subscribers_lock:
            self._subscribers.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._subscribers_lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    def publish(self, event: RegistryEvent) -> None:
        """Deliver a committed event. A failing subscriber does not stop the others."""
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            if not subscription.filter.matches(event):
                continue
            try:
                subscription.callback(event)
            except Exception:
                logger.exception("Subscriber %r failed on event %d (%s)",
                                 subscription.callback, event.id, event.name.value)

    # --- Reading ---

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> RegistryEvent:
        return RegistryEvent(
            id=row["id"],
            name=EventName(row["name"]),
            args=json.loads(row["args"]),
            timestamp=row["timestamp"],
            hash=row["hash"],
            prev_hash=row["prev_hash"],
            period_key=row["period_key"],
        )

    def list_events(
        self,
        name: Optional[EventName] = None,
        period_key: Optional[str] = None,
        after_id: int = 0,
        limit: Optional[int] = 100,
    ) -> List[RegistryEvent]:
        """Events in commit order, oldest first. ``after_id`` is a polling cursor."""
        clauses = ["id > ?"]
        params: List[Any] = [after_id]
        if name is not None:
            clauses.append("name = ?")
            params.append(name.value)
        if period_key is not None:
            clauses.append("period_key = ?")
            params.append(period_key)
        sql = f"SELECT * FROM events WHERE {' AND '.join(clauses)} ORDER BY id ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        with self.store.reader() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_event(r) for r in rows]

    def count(self) -> int:
        with self.store.reader() as conn:
            row = conn.execute("SELECT COUNT(*) FROM events").fetchone()
        return int(row[0]) if row else 0

    def verify_chain(self) -> bool:
        """Verify no stored entry has been altered, dropped or reordered."""
        prev_hash = None
        for event in self.list_events(limit=None):
            if event.prev_hash != prev_hash:
                return False
            expected = _entry_hash({
                "timestamp": event.timestamp,
                "name": event.name.value,
                "period_key": event.period_key,
                "args": event.args,
                "prev_hash": event.prev_hash,
            })
            if event.hash != expected:
                return False
            prev_hash = event.hash
        return True

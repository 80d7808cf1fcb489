"""Append-only, hash-chained notification journal backed by SQLite.

The journal records every notification a marketplace publishes, in commit
order, as a permanent history of listings and sales.  Attach it to a
``NotificationBus`` and it journals everything the bus delivers.

Design:
- Append-only: only `append()` writes; no update, no delete.
- Hash-chained per market: each entry includes SHA-256 of the previous entry.
- (market, sequence) UNIQUE so a notification is never journaled twice.
- WAL journal mode for concurrent readers.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from marketledger.core.hasher import canonical_json_bytes, compute_entry_hash
from marketledger.core.notification_bus import NotificationBus
from marketledger.models.journal import JournalEntry
from marketledger.models.notifications import NotificationBase

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_JOURNAL = """
CREATE TABLE IF NOT EXISTS notification_journal (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id            TEXT NOT NULL UNIQUE,
    market              TEXT NOT NULL,
    sequence            INTEGER NOT NULL,
    item_id             INTEGER NOT NULL,
    kind                TEXT NOT NULL,
    timestamp_utc       TEXT NOT NULL,
    payload_json        TEXT NOT NULL,
    payload_hash        TEXT NOT NULL DEFAULT '',
    previous_entry_hash TEXT NOT NULL DEFAULT '',
    entry_hash          TEXT NOT NULL UNIQUE,
    UNIQUE (market, sequence)
);
"""

_CREATE_IDX_MARKET_ITEM = """
CREATE INDEX IF NOT EXISTS idx_market_item ON notification_journal(market, item_id, id);
"""

_COLUMNS = (
    "entry_id, market, sequence, item_id, kind, timestamp_utc, "
    "payload_json, payload_hash, previous_entry_hash, entry_hash"
)


class JournalIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class NotificationJournal:
    """Append-only, hash-chained journal of marketplace notifications.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._append_lock = threading.Lock()
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_JOURNAL)
            conn.execute(_CREATE_IDX_MARKET_ITEM)
            conn.commit()

    def attach(self, bus: NotificationBus) -> None:
        """Journal every notification *bus* publishes from now on."""
        bus.subscribe(self.append)

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def append(self, notification: NotificationBase) -> JournalEntry:
        """Append *notification*, sealing it into the market's hash chain.

        Returns the sealed entry. This is the ONLY write method.
        """
        with self._append_lock:
            entry = JournalEntry(
                market=notification.market,
                sequence=notification.sequence,
                item_id=notification.item_id,
                kind=notification.kind,
                timestamp_utc=notification.timestamp_utc,
                payload_json=canonical_json_bytes(
                    notification.model_dump(mode="json")
                ).decode("utf-8"),
                payload_hash=notification.payload_hash,
                previous_entry_hash=self._get_latest_hash(notification.market),
            )
            sealed = entry.model_copy(
                update={"entry_hash": compute_entry_hash(entry.model_dump(mode="json"))}
            )
            self._insert(sealed)
        logger.debug(
            "Journaled %s #%d for market %s",
            sealed.kind.value,
            sealed.sequence,
            sealed.market,
        )
        return sealed

    def _insert(self, entry: JournalEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO notification_journal ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.entry_id,
                    entry.market,
                    entry.sequence,
                    entry.item_id,
                    entry.kind.value,
                    entry.timestamp_utc.isoformat(),
                    entry.payload_json,
                    entry.payload_hash,
                    entry.previous_entry_hash,
                    entry.entry_hash,
                ),
            )
            conn.commit()

    def _get_latest_hash(self, market: str) -> str:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT entry_hash FROM notification_journal "
                "WHERE market = ? ORDER BY id DESC LIMIT 1",
                (market,),
            ).fetchone()
        return row[0] if row else ""

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def entries(self, market: str) -> list[JournalEntry]:
        """Return all entries for *market*, in commit order."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM notification_journal "
                "WHERE market = ? ORDER BY id ASC",
                (market,),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def item_history(self, market: str, item_id: int) -> list[JournalEntry]:
        """Return every entry about *item_id* of *market*."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM notification_journal "
                "WHERE market = ? AND item_id = ? ORDER BY id ASC",
                (market, item_id),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def markets(self) -> list[str]:
        """Return every market with at least one journaled notification."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT market FROM notification_journal GROUP BY market ORDER BY MIN(id)"
            ).fetchall()
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Chain verification
    # ------------------------------------------------------------------

    def verify_chain(self, market: str) -> bool:
        """Verify the hash chain integrity for *market*.

        Walks all entries in order, recomputes each entry_hash, and checks
        that previous_entry_hash links and sequence numbers line up.

        Returns True if the chain is valid, raises JournalIntegrityError otherwise.
        """
        prev_hash = ""
        expected_sequence = 1
        for entry in self.entries(market):
            if entry.previous_entry_hash != prev_hash:
                raise JournalIntegrityError(
                    f"Chain broken at entry {entry.entry_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {entry.previous_entry_hash!r}"
                )

            expected_hash = compute_entry_hash(entry.model_dump(mode="json"))
            if entry.entry_hash != expected_hash:
                raise JournalIntegrityError(
                    f"Tampered entry {entry.entry_id}: "
                    f"expected hash={expected_hash!r}, "
                    f"got {entry.entry_hash!r}"
                )

            if entry.sequence != expected_sequence:
                raise JournalIntegrityError(
                    f"Sequence gap at entry {entry.entry_id}: "
                    f"expected {expected_sequence}, got {entry.sequence}"
                )

            prev_hash = entry.entry_hash
            expected_sequence += 1

        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_entry(row: tuple) -> JournalEntry:
        (
            entry_id,
            market,
            sequence,
            item_id,
            kind,
            timestamp_utc,
            payload_json,
            payload_hash,
            previous_entry_hash,
            entry_hash,
        ) = row
        return JournalEntry(
            entry_id=entry_id,
            market=market,
            sequence=sequence,
            item_id=item_id,
            kind=kind,
            timestamp_utc=timestamp_utc,
            payload_json=payload_json,
            payload_hash=payload_hash,
            previous_entry_hash=previous_entry_hash,
            entry_hash=entry_hash,
        )

"""Adversarial tests — notification journal tampering.

These tests verify that the journal detects:
1. Corrupted entry hashes
2. Edited notification payloads
3. Deleted entries (broken links)
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from marketledger.core.journal import JournalIntegrityError, NotificationJournal
from marketledger.models.notifications import Offered

MARKET = "0xmarket-adversarial"


class TestJournalTamperDetection:
    """Direct SQLite manipulation to simulate an attacker with DB access."""

    @pytest.fixture
    def seeded(self, tmp_path: Path) -> NotificationJournal:
        journal = NotificationJournal(tmp_path / "journal.db")
        for i in range(1, 6):
            journal.append(Offered(
                market=MARKET, sequence=i, item_id=i, registry_ref="0xnft",
                token_id=i, price=100 * i, seller="0xseller",
            ))
        return journal

    def _execute(self, journal: NotificationJournal, sql: str) -> None:
        conn = sqlite3.connect(str(journal.db_path))
        conn.execute(sql, (MARKET,))
        conn.commit()
        conn.close()

    def test_corrupted_entry_hash_detected(self, seeded):
        self._execute(
            seeded,
            "UPDATE notification_journal SET entry_hash = 'TAMPERED' "
            "WHERE market = ? AND sequence = 3",
        )
        with pytest.raises(JournalIntegrityError, match="(Chain broken|Tampered)"):
            seeded.verify_chain(MARKET)

    def test_edited_payload_detected(self, seeded):
        self._execute(
            seeded,
            "UPDATE notification_journal SET payload_json = "
            "replace(payload_json, '\"price\":200', '\"price\":1') "
            "WHERE market = ? AND sequence = 2",
        )
        with pytest.raises(JournalIntegrityError, match="Tampered"):
            seeded.verify_chain(MARKET)

    def test_deleted_entry_detected(self, seeded):
        self._execute(
            seeded,
            "DELETE FROM notification_journal WHERE market = ? AND sequence = 2",
        )
        with pytest.raises(JournalIntegrityError, match="Chain broken"):
            seeded.verify_chain(MARKET)

    def test_untouched_chain_valid(self, seeded):
        assert seeded.verify_chain(MARKET) is True

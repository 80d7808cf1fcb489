"""Tests for the NotificationJournal — append-only, hash-chained, per market."""

from __future__ import annotations

import json

from marketledger.core.journal import NotificationJournal
from marketledger.core.notification_bus import NotificationBus
from marketledger.models.notifications import Bought, NotificationKind, Offered


def _offered(market: str, sequence: int, item_id: int = 1) -> Offered:
    return Offered(
        market=market, sequence=sequence, item_id=item_id,
        registry_ref="0xnft", token_id=item_id, price=100, seller="0xseller",
    )


class TestNotificationJournal:
    def test_append_seals_entry(self, journal: NotificationJournal):
        entry = journal.append(_offered("m1", 1))
        assert entry.entry_hash != ""
        assert entry.previous_entry_hash == ""  # first entry
        assert entry.kind == NotificationKind.OFFERED

    def test_hash_chain_links(self, journal: NotificationJournal):
        e1 = journal.append(_offered("m1", 1))
        e2 = journal.append(_offered("m1", 2, item_id=2))
        assert e2.previous_entry_hash == e1.entry_hash

    def test_chains_are_per_market(self, journal: NotificationJournal):
        journal.append(_offered("m1", 1))
        e2 = journal.append(_offered("m2", 1))
        assert e2.previous_entry_hash == ""
        assert journal.markets() == ["m1", "m2"]

    def test_verify_chain(self, journal: NotificationJournal):
        journal.append(_offered("m1", 1))
        journal.append(_offered("m1", 2, item_id=2))
        assert journal.verify_chain("m1") is True
        assert journal.verify_chain("nonexistent") is True

    def test_entries_round_trip(self, journal: NotificationJournal):
        sealed = journal.append(_offered("m1", 1))
        [loaded] = journal.entries("m1")
        assert loaded == sealed
        assert json.loads(loaded.payload_json)["seller"] == "0xseller"

    def test_item_history(self, journal: NotificationJournal):
        journal.append(_offered("m1", 1, item_id=1))
        journal.append(_offered("m1", 2, item_id=2))
        journal.append(Bought(
            market="m1", sequence=3, item_id=1, registry_ref="0xnft",
            token_id=1, price=100, seller="0xseller", buyer="0xbuyer",
        ))
        history = journal.item_history("m1", 1)
        assert [e.kind for e in history] == [NotificationKind.OFFERED, NotificationKind.BOUGHT]

    def test_attach_to_bus(self, journal: NotificationJournal):
        bus = NotificationBus()
        journal.attach(bus)
        bus.publish(_offered("m1", 1))
        [entry] = journal.entries("m1")
        assert entry.payload_hash != ""

    def test_survives_reopen(self, journal: NotificationJournal):
        journal.append(_offered("m1", 1))
        reopened = NotificationJournal(journal.db_path)
        assert len(reopened.entries("m1")) == 1
        assert reopened.verify_chain("m1") is True

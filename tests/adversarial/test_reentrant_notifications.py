"""Adversarial tests — subscribers that call back into the ledger.

A subscriber reacting to ``Offered`` by buying the item commits a sale while
the offer is still being delivered.  Every subscriber, and the journal, must
still see the offer first.
"""

from __future__ import annotations

from marketledger.core.journal import NotificationJournal
from marketledger.models.notifications import Bought, NotificationBase, NotificationKind, Offered

SELLER, BUYER = "0xaddr1", "0xaddr2"


def _auto_buyer(market, buyer: str):
    receipts = []

    def _on_offered(notification: NotificationBase) -> None:
        total = market.get_total_price(notification.item_id)
        receipts.append(market.purchase_item(buyer, notification.item_id, total))

    return _on_offered, receipts

class TestReentrantSubscribers:
    def test_later_subscribers_see_commit_order(self, market, bus, make_listing):
        on_offered, receipts = _auto_buyer(market, BUYER)
        bus.subscribe(on_offered, NotificationKind.OFFERED)
        sequences: list[int] = []
        bus.subscribe(lambda n: sequences.append(n.sequence))

        make_listing(SELLER)

        assert len(receipts) == 1
        assert sequences == [1, 2]
        assert market.items(1).sold is True

    def test_journal_chain_stays_valid(
        self, market, bus, journal: NotificationJournal, make_listing
    ):
        on_offered, _ = _auto_buyer(market, BUYER)
        bus.subscribe(on_offered, NotificationKind.OFFERED)
        journal.attach(bus)

        make_listing(SELLER)
        make_listing(SELLER)

        entries = journal.entries(market.address)
        assert [e.sequence for e in entries] == [1, 2, 3, 4]
        assert [e.kind for e in entries] == [
            NotificationKind.OFFERED,
            NotificationKind.BOUGHT,
            NotificationKind.OFFERED,
            NotificationKind.BOUGHT,
        ]
        assert journal.verify_chain(market.address) is True

    def test_each_subscriber_gets_offer_before_sale(self, market, bus, make_listing):
        on_offered, _ = _auto_buyer(market, BUYER)
        first: list[type] = []
        last: list[type] = []
        bus.subscribe(lambda n: first.append(type(n)))
        bus.subscribe(on_offered, NotificationKind.OFFERED)
        bus.subscribe(lambda n: last.append(type(n)))

        make_listing(SELLER)

        assert first == [Offered, Bought]
        assert last == [Offered, Bought]

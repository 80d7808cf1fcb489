"""Tests for NotificationBus — hashing, ordered dispatch, serialization."""

from __future__ import annotations

import json

import pytest

from marketledger.core.notification_bus import (
    NotificationBus,
    NotificationValidationError,
)
from marketledger.models.notifications import Bought, NotificationKind, Offered


def _offered(sequence: int = 1, **overrides) -> Offered:
    defaults = {
        "market": "0xmarket",
        "sequence": sequence,
        "item_id": 1,
        "registry_ref": "0xnft",
        "token_id": 1,
        "price": 100,
        "seller": "0xseller",
    }
    defaults.update(overrides)
    return Offered(**defaults)


class TestNotificationBus:
    def test_publish_sets_payload_hash(self):
        bus = NotificationBus()
        prepared = bus.publish(_offered())
        assert prepared.payload_hash != ""

    def test_payload_hash_ignores_id_and_time(self):
        bus = NotificationBus()
        a = bus.prepare(_offered())
        b = bus.prepare(_offered())
        assert a.notification_id != b.notification_id
        assert a.payload_hash == b.payload_hash

    def test_payload_hash_covers_content(self):
        bus = NotificationBus()
        assert bus.prepare(_offered(price=1)).payload_hash != bus.prepare(
            _offered(price=2)
        ).payload_hash

    def test_kind_filtering(self):
        bus = NotificationBus()
        offered, bought = [], []
        bus.subscribe(offered.append, NotificationKind.OFFERED)
        bus.subscribe(bought.append, NotificationKind.BOUGHT)

        bus.publish(_offered())
        assert len(offered) == 1
        assert bought == []

    def test_wildcard_receives_in_order(self):
        bus = NotificationBus()
        seen = []
        bus.subscribe(seen.append)
        for seq in (1, 2, 3):
            bus.publish(_offered(sequence=seq))
        assert [n.sequence for n in seen] == [1, 2, 3]

    def test_failing_subscriber_does_not_block_others(self):
        bus = NotificationBus()
        seen = []

        def _boom(notification):
            raise RuntimeError("subscriber down")

        bus.subscribe(_boom)
        bus.subscribe(seen.append)
        bus.publish(_offered())
        assert len(seen) == 1

    def test_publish_from_handler_is_queued(self):
        bus = NotificationBus()
        seen = []

        def _chain(notification):
            if notification.sequence == 1:
                bus.publish(_offered(sequence=2))

        bus.subscribe(_chain)
        bus.subscribe(lambda n: seen.append(n.sequence))
        bus.publish(_offered(sequence=1))
        bus.publish(_offered(sequence=3))
        assert seen == [1, 2, 3]

    def test_interrupted_delivery_does_not_stall_bus(self):
        bus = NotificationBus()
        seen = []

        def _interrupt(notification):
            if notification.sequence == 1:
                raise KeyboardInterrupt

        bus.subscribe(_interrupt)
        with pytest.raises(KeyboardInterrupt):
            bus.publish(_offered(sequence=1))

        bus.subscribe(seen.append)
        bus.publish(_offered(sequence=2))
        assert [n.sequence for n in seen] == [2]

    def test_unsubscribe(self):
        bus = NotificationBus()
        seen = []
        bus.subscribe(seen.append)
        bus.subscribe(seen.append)  # duplicate ignored
        assert bus.subscriber_count() == 1
        bus.unsubscribe(seen.append)
        bus.unsubscribe(seen.append)  # already gone
        bus.publish(_offered())
        assert seen == []

    def test_receive_round_trip(self):
        bus = NotificationBus()
        bought = Bought(
            market="0xmarket", sequence=2, item_id=1, registry_ref="0xnft",
            token_id=1, price=100, seller="0xseller", buyer="0xbuyer",
        )
        received = bus.receive(NotificationBus.serialize(bus.prepare(bought)))
        assert isinstance(received, Bought)
        assert received.buyer == "0xbuyer"

    def test_receive_invalid_json(self):
        with pytest.raises(NotificationValidationError, match="Invalid JSON"):
            NotificationBus().receive(b"not json")

    def test_receive_non_object(self):
        with pytest.raises(NotificationValidationError, match="JSON object"):
            NotificationBus().receive("[1, 2]")

    def test_receive_missing_kind(self):
        with pytest.raises(NotificationValidationError, match="Missing kind"):
            NotificationBus().receive(json.dumps({"item_id": 1}))

    def test_receive_unknown_kind(self):
        with pytest.raises(NotificationValidationError, match="Unknown notification kind"):
            NotificationBus().receive(json.dumps({"kind": "listed"}))

    def test_receive_missing_fields(self):
        with pytest.raises(NotificationValidationError, match="validation failed"):
            NotificationBus().receive(json.dumps({"kind": "bought", "item_id": 1}))

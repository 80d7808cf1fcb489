"""Shared test fixtures for marketledger."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from marketledger.core.journal import NotificationJournal
from marketledger.core.marketplace import MarketplaceLedger
from marketledger.core.notification_bus import NotificationBus
from marketledger.core.payments import InMemoryPaymentRail
from marketledger.core.registry import InMemoryItemRegistry, RegistryDirectory
from marketledger.core.units import to_base_units
from marketledger.models.notifications import NotificationBase

FEE_PERCENT = 1
URI = "Sample URI"

DEPLOYER = "0xdeployer"
ADDR1 = "0xaddr1"
ADDR2 = "0xaddr2"


def to_wei(amount: str | int) -> int:
    return to_base_units(str(amount))


@pytest.fixture
def signers() -> tuple[str, str, str]:
    """Provide the deployer and two user accounts."""
    return DEPLOYER, ADDR1, ADDR2


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def nft() -> InMemoryItemRegistry:
    """Provide a fresh item collection."""
    return InMemoryItemRegistry()


@pytest.fixture
def rail() -> InMemoryPaymentRail:
    """Provide a payment rail where every test account holds 100 units."""
    rail = InMemoryPaymentRail()
    for account in (DEPLOYER, ADDR1, ADDR2):
        rail.credit(account, to_wei(100))
    return rail


@pytest.fixture
def bus() -> NotificationBus:
    return NotificationBus()


@pytest.fixture
def received(bus: NotificationBus) -> list[NotificationBase]:
    """Every notification published on the test bus, in order."""
    seen: list[NotificationBase] = []
    bus.subscribe(seen.append)
    return seen


@pytest.fixture
def market(
    nft: InMemoryItemRegistry, rail: InMemoryPaymentRail, bus: NotificationBus
) -> MarketplaceLedger:
    """Provide a marketplace deployed by DEPLOYER with a 1% fee."""
    return MarketplaceLedger(FEE_PERCENT, DEPLOYER, RegistryDirectory([nft]), rail, bus=bus)


@pytest.fixture
def journal(tmp_dir: Path) -> NotificationJournal:
    """Provide a fresh NotificationJournal backed by a temp SQLite database."""
    return NotificationJournal(tmp_dir / "test_journal.db")


@pytest.fixture
def make_listing(
    nft: InMemoryItemRegistry, market: MarketplaceLedger
) -> Callable[..., int]:
    """Factory fixture: mint, approve and list one item; return its item_id."""

    def _factory(seller: str = ADDR1, price: int | None = None) -> int:
        token_id = nft.mint(seller, URI)
        nft.set_approval_for_all(seller, market.address, True)
        return market.list_item(
            seller, nft.address, token_id, to_wei(1) if price is None else price
        )

    return _factory

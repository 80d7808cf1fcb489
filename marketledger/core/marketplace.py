"""Marketplace Ledger — fixed-price listings with atomic three-way settlement.

Listings and custody
--------------------
A seller lists an item it holds in an Item Registry after granting the
marketplace operator approval.  Listing moves the item into the
marketplace's own custody (escrow) before the listing is recorded, so every
unsold listing is backed by an item the marketplace actually holds.

Settlement
----------
``purchase_item`` runs as one unit of work:

1. collect the attached payment from the buyer into custody
2. pay ``price`` to the seller
3. pay ``payment - price`` to the fee collector
4. deliver the item from custody to the buyer

Each completed value transfer records its inverse.  If a later step fails,
the recorded inverses run in reverse order and the listing stays unsold;
the caller gets ``ExternalTransferFailed``.

Serialization
-------------
A single re-entrant writer lock serializes ``list_item`` and
``purchase_item``.  An item under settlement is marked in-flight before any
external call, so a collaborator calling back into ``purchase_item`` for the
same item is refused with ``AlreadySold``.  Listings are frozen models
swapped whole on commit; lock-free readers only ever see committed records.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable

from marketledger.core.arithmetic import (
    checked_add,
    checked_sub,
    fee_for,
    require_amount,
    total_price,
)
from marketledger.core.errors import (
    AlreadySold,
    ExternalTransferFailed,
    InsufficientPayment,
    InvalidPrice,
    ItemNotFound,
    NotAuthorized,
    RollbackFailed,
    TransferRejected,
)
from marketledger.core.hasher import derive_address
from marketledger.core.notification_bus import NotificationBus
from marketledger.core.payments import PaymentRail
from marketledger.core.registry import ItemRegistry, RegistryDirectory
from marketledger.models.listings import (
    FeeConfig,
    Listing,
    MarketStats,
    Quote,
    Receipt,
)
from marketledger.models.notifications import Bought, NotificationBase, Offered

logger = logging.getLogger(__name__)


class _Settlement:
    """Runs settlement steps and remembers how to undo the completed ones."""

    def __init__(self, item_id: int) -> None:
        self.item_id = item_id
        self._undo: list[tuple[str, Callable[[], None]]] = []

    def step(
        self,
        name: str,
        action: Callable[[], None],
        undo: Callable[[], None] | None = None,
    ) -> None:
        try:
            action()
        except Exception as exc:
            raise ExternalTransferFailed(
                f"Settlement of item {self.item_id} failed at '{name}': {exc}"
            ) from exc
        if undo is not None:
            self._undo.append((name, undo))

    def compensate(self) -> None:
        """Undo completed steps, newest first.

        Raises ``RollbackFailed`` naming every step that could not be undone.
        """
        pending: list[str] = []
        for name, undo in reversed(self._undo):
            try:
                undo()
            except Exception:
                logger.exception(
                    "Compensation '%s' failed for item %d", name, self.item_id
                )
                pending.append(name)
        self._undo.clear()
        if pending:
            raise RollbackFailed(self.item_id, pending)


class MarketplaceLedger:
    """Catalog of fixed-price listings and the settlement engine for them.

    Parameters
    ----------
    fee_percent:
        Whole percentage points charged on top of every price (``1`` = 1%).
    deployer:
        Identity constructing the marketplace; it becomes the fee collector.
    registries:
        Resolves ``registry_ref`` values to reachable item registries.
    payments:
        Payment rail used for all value transfers.
    bus:
        Notification bus for ``Offered`` / ``Bought``.  A private bus is
        created when omitted.
    address:
        The marketplace's own identity (custody account).  Derived from the
        deployer when omitted.

    Examples
    --------
    >>> from marketledger.core.payments import InMemoryPaymentRail
    >>> from marketledger.core.registry import RegistryDirectory
    >>> market = MarketplaceLedger(1, "0xdeployer", RegistryDirectory(), InMemoryPaymentRail())
    >>> market.item_count
    0
    >>> market.fee_percent
    1
    """

    def __init__(
        self,
        fee_percent: int,
        deployer: str,
        registries: RegistryDirectory,
        payments: PaymentRail,
        bus: NotificationBus | None = None,
        address: str | None = None,
    ) -> None:
        if isinstance(fee_percent, bool) or not isinstance(fee_percent, int) or fee_percent < 0:
            raise ValueError(f"fee_percent must be a non-negative integer, got {fee_percent!r}")
        self._fees = FeeConfig(fee_account=deployer, fee_percent=fee_percent)
        self._address = address or derive_address(
            "marketplace", deployer, fee_percent, uuid.uuid4().hex
        )
        self._registries = registries
        self._payments = payments
        self._bus = bus or NotificationBus()

        self._write_lock = threading.RLock()
        self._listings: list[Listing] = []  # item_id N lives at index N - 1
        self._in_flight: set[int] = set()
        self._sequence = 0
        logger.info(
            "Marketplace %s deployed by %s (fee %d%%)",
            self._address,
            deployer,
            fee_percent,
        )

    # -- Identity & configuration ------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def fee_account(self) -> str:
        return self._fees.fee_account

    @property
    def fee_percent(self) -> int:
        return self._fees.fee_percent

    @property
    def fee_config(self) -> FeeConfig:
        return self._fees

    @property
    def bus(self) -> NotificationBus:
        return self._bus

    @property
    def item_count(self) -> int:
        """Number of listings ever created (ids ``1..item_count``)."""
        return len(self._listings)

    # -- Listing ------------------------------------------------------------

    def list_item(self, caller: str, registry_ref: str, token_id: int, price: int) -> int:
        """List *token_id* of *registry_ref* for *price* base units.

        The item is transferred into the marketplace's custody before the
        listing is recorded.  Returns the new ``item_id``.

        Raises
        ------
        InvalidPrice
            *price* is not a positive integer.
        ArithmeticOverflow
            The total price for *price* would leave the value domain.
        NotAuthorized
            *caller* does not hold the item or has not approved the
            marketplace as operator.
        ExternalTransferFailed
            The registry could not be reached or queried, or refused the
            custody transfer.
        """
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            logger.warning("Rejected listing by %s: invalid price %r", caller, price)
            raise InvalidPrice(price)
        # a listing nobody could ever pay for is refused up front
        total_price(price, self.fee_percent)

        with self._write_lock:
            registry = self._registries.resolve(registry_ref)
            self._authorize(registry, caller, registry_ref, token_id)
            try:
                registry.transfer_from(self._address, caller, self._address, token_id)
            except Exception as exc:
                raise ExternalTransferFailed(
                    f"Custody transfer of token {token_id} from {caller} failed: {exc}"
                ) from exc

            item_id = len(self._listings) + 1
            listing = Listing(
                item_id=item_id,
                registry_ref=registry_ref,
                token_id=token_id,
                price=price,
                seller=caller,
            )
            self._listings.append(listing)
            self._publish(
                Offered(
                    market=self._address,
                    sequence=self._next_sequence(),
                    item_id=item_id,
                    registry_ref=registry_ref,
                    token_id=token_id,
                    price=price,
                    seller=caller,
                )
            )

        logger.info(
            "Listed item %d (token %d of %s) by %s at %d",
            item_id,
            token_id,
            registry_ref,
            caller,
            price,
        )
        return item_id

    def _authorize(
        self, registry: ItemRegistry, caller: str, registry_ref: str, token_id: int
    ) -> None:
        try:
            holder = registry.holder_of(token_id)
            approved = holder == caller and registry.is_approved_for_all(
                caller, self._address
            )
        except (KeyError, TransferRejected) as exc:
            raise NotAuthorized(caller, registry_ref, token_id, str(exc)) from exc
        except Exception as exc:
            raise ExternalTransferFailed(
                f"Registry {registry_ref} could not confirm token {token_id}: {exc}"
            ) from exc
        if holder != caller:
            raise NotAuthorized(caller, registry_ref, token_id, "caller is not the holder")
        if not approved:
            raise NotAuthorized(
                caller, registry_ref, token_id, "marketplace is not an approved operator"
            )

    # -- Pricing ------------------------------------------------------------

    def get_total_price(self, item_id: int) -> int:
        """Price plus fee for *item_id*: ``price + price * fee_percent // 100``.

        A pure computation: sold listings still quote their price, and an id
        with no listing quotes ``0``.
        """
        listing = self._lookup(item_id)
        if listing is None:
            return 0
        return total_price(listing.price, self.fee_percent)

    def quote(self, item_id: int) -> Quote:
        """Price breakdown for an existing listing."""
        listing = self.items(item_id)
        fee = fee_for(listing.price, self.fee_percent)
        return Quote(
            item_id=item_id,
            price=listing.price,
            fee=fee,
            total_price=checked_add(listing.price, fee),
            sold=listing.sold,
        )

    # -- Purchase -----------------------------------------------------------

    def purchase_item(self, caller: str, item_id: int, payment_amount: int) -> Receipt:
        """Buy *item_id* for *payment_amount* attached by *caller*.

        Validation runs in order ``ItemNotFound``, ``InsufficientPayment``,
        ``AlreadySold``.  Everything paid above ``price`` goes to the fee
        collector.

        Raises
        ------
        ItemNotFound, InsufficientPayment, AlreadySold
            Validation failures; nothing was transferred.
        ArithmeticOverflow
            *payment_amount* is not an integer or exceeds the value domain.
        ExternalTransferFailed
            A transfer failed; completed steps were undone.
        RollbackFailed
            A transfer failed and undoing the completed steps also failed.
        """
        with self._write_lock:
            listing = self.items(item_id)
            required = total_price(listing.price, self.fee_percent)
            # any integer short of the total, negatives included, is underpayment
            if (
                isinstance(payment_amount, int)
                and not isinstance(payment_amount, bool)
                and payment_amount < required
            ):
                logger.warning(
                    "Rejected purchase of item %d by %s: paid %d < %d",
                    item_id,
                    caller,
                    payment_amount,
                    required,
                )
                raise InsufficientPayment(item_id, required, payment_amount)
            paid = require_amount(payment_amount)
            if listing.sold or item_id in self._in_flight:
                logger.warning(
                    "Rejected purchase of item %d by %s: already sold", item_id, caller
                )
                raise AlreadySold(item_id)

            registry = self._registries.resolve(listing.registry_ref)
            fee = checked_sub(paid, listing.price)

            self._in_flight.add(item_id)
            try:
                self._settle(listing, registry, caller, paid, fee)
                receipt = Receipt(
                    item_id=item_id,
                    registry_ref=listing.registry_ref,
                    token_id=listing.token_id,
                    seller=listing.seller,
                    buyer=caller,
                    price=listing.price,
                    fee=fee,
                    paid=paid,
                )
                self._listings[item_id - 1] = listing.model_copy(update={"sold": True})
            finally:
                self._in_flight.discard(item_id)

            self._publish(
                Bought(
                    market=self._address,
                    sequence=self._next_sequence(),
                    item_id=item_id,
                    registry_ref=listing.registry_ref,
                    token_id=listing.token_id,
                    price=listing.price,
                    seller=listing.seller,
                    buyer=caller,
                )
            )

        logger.info(
            "Sold item %d to %s: %d to seller %s, %d fee to %s",
            item_id,
            caller,
            listing.price,
            listing.seller,
            fee,
            self.fee_account,
        )
        return receipt

    def _settle(
        self,
        listing: Listing,
        registry: ItemRegistry,
        buyer: str,
        paid: int,
        fee: int,
    ) -> None:
        market = self._address
        pay = self._payments.transfer
        settlement = _Settlement(listing.item_id)
        try:
            settlement.step(
                "collect payment",
                lambda: pay(buyer, market, paid),
                undo=lambda: pay(market, buyer, paid),
            )
            settlement.step(
                "pay seller",
                lambda: pay(market, listing.seller, listing.price),
                undo=lambda: pay(listing.seller, market, listing.price),
            )
            settlement.step(
                "pay fee",
                lambda: pay(market, self.fee_account, fee),
                undo=lambda: pay(self.fee_account, market, fee),
            )
            # last step: nothing after it can fail, so it needs no inverse
            settlement.step(
                "deliver item",
                lambda: registry.transfer_from(market, market, buyer, listing.token_id),
            )
        except ExternalTransferFailed as exc:
            logger.warning("%s; rolling back", exc)
            try:
                settlement.compensate()
            except RollbackFailed as rollback_exc:
                raise rollback_exc from exc
            raise

    # -- Queries ------------------------------------------------------------

    def _lookup(self, item_id: int) -> Listing | None:
        if isinstance(item_id, bool) or not isinstance(item_id, int):
            return None
        listings = self._listings
        if 1 <= item_id <= len(listings):
            return listings[item_id - 1]
        return None

    def items(self, item_id: int) -> Listing:
        """Return the listing for *item_id*.

        Raises ``ItemNotFound`` when *item_id* is outside ``[1, item_count]``.
        """
        listing = self._lookup(item_id)
        if listing is None:
            raise ItemNotFound(item_id, self.item_count)
        return listing

    get_listing = items

    def list_all(self) -> list[Listing]:
        """Every listing ever created, in id order."""
        return list(self._listings)

    def list_unsold(self) -> list[Quote]:
        """Quotes for every listing still open for purchase, in id order."""
        return [self.quote(l.item_id) for l in self.list_all() if not l.sold]

    def get_stats(self) -> MarketStats:
        """Return summary statistics over every listing."""
        listings = self.list_all()
        sold = [l for l in listings if l.sold]
        return MarketStats(
            total=len(listings),
            sold_count=len(sold),
            unsold_count=len(listings) - len(sold),
            listed_volume=sum(l.price for l in listings),
            settled_volume=sum(l.price for l in sold),
        )

    # -- Notifications ------------------------------------------------------

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def _publish(self, notification: NotificationBase) -> None:
        self._bus.publish(notification)

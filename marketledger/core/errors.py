"""Error taxonomy for the Marketplace Ledger.

Every operation fails with one specific error kind and leaves no partial
state behind.  All ``MarketError`` subclasses are recoverable by the caller;
none of them is retried inside the ledger.

Collaborators (the Item Registry and the payment rail) signal refusal with
``TransferRejected``.  The ledger never lets that escape: it is converted to
``ExternalTransferFailed`` (or ``NotAuthorized`` where the authorization
check is delegated to the registry) before it reaches the caller.
"""

from __future__ import annotations


class MarketError(RuntimeError):
    """Base class for every error raised by a Marketplace Ledger operation."""


class InvalidPrice(MarketError):
    """Listing attempted with a non-positive price."""

    def __init__(self, price: object) -> None:
        self.price = price
        super().__init__(f"Price must be greater than 0, got {price!r}")


class NotAuthorized(MarketError):
    """Caller lacks holder or operator-approval rights for the item."""

    def __init__(self, caller: str, registry_ref: str, token_id: int, reason: str) -> None:
        self.caller = caller
        self.registry_ref = registry_ref
        self.token_id = token_id
        super().__init__(
            f"{caller} may not list token {token_id} of {registry_ref}: {reason}"
        )


class ItemNotFound(MarketError):
    """``item_id`` lies outside ``[1, item_count]``."""

    def __init__(self, item_id: object, item_count: int) -> None:
        self.item_id = item_id
        self.item_count = item_count
        super().__init__(
            f"Item does not exist: {item_id!r} (item count is {item_count})"
        )


class InsufficientPayment(MarketError):
    """Attached payment is below the computed total price."""

    def __init__(self, item_id: int, required: int, offered: int) -> None:
        self.item_id = item_id
        self.required = required
        self.offered = offered
        super().__init__(
            f"Not enough value to cover the price and market fee of item "
            f"{item_id}: required {required}, offered {offered}"
        )


class AlreadySold(MarketError):
    """Purchase attempted on a listing already marked sold."""

    def __init__(self, item_id: int) -> None:
        self.item_id = item_id
        super().__init__(f"Item is already sold: {item_id}")


class ExternalTransferFailed(MarketError):
    """The Item Registry or the payment rail rejected a transfer."""


class ArithmeticOverflow(MarketError):
    """An amount left the unsigned 256-bit value domain."""


class RollbackFailed(MarketError):
    """A compensating transfer failed while undoing a settlement.

    The collaborators may now disagree with the ledger; ``pending`` names the
    compensation steps that could not be applied.
    """

    def __init__(self, item_id: int, pending: list[str]) -> None:
        self.item_id = item_id
        self.pending = pending
        super().__init__(
            f"Rollback of item {item_id} incomplete; unapplied steps: "
            + ", ".join(pending)
        )


class TransferRejected(RuntimeError):
    """Raised by a collaborator that refuses a transfer."""

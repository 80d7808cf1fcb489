"""marketledger: fixed-price marketplace ledger with atomic settlement.

Sellers list registry items for a fixed price; the marketplace holds each
listed item in escrow and settles purchases all-or-nothing: proceeds to the
seller, fee to the fee collector, item to the buyer.
"""

__version__ = "0.1.0"
__description__ = "Fixed-price marketplace ledger with atomic three-way settlement"

from marketledger.core.errors import (
    AlreadySold,
    ArithmeticOverflow,
    ExternalTransferFailed,
    InsufficientPayment,
    InvalidPrice,
    ItemNotFound,
    MarketError,
    NotAuthorized,
    RollbackFailed,
)
from marketledger.core.marketplace import MarketplaceLedger
from marketledger.core.notification_bus import NotificationBus

__all__ = [
    "MarketplaceLedger",
    "NotificationBus",
    "MarketError",
    "InvalidPrice",
    "NotAuthorized",
    "ItemNotFound",
    "InsufficientPayment",
    "AlreadySold",
    "ExternalTransferFailed",
    "ArithmeticOverflow",
    "RollbackFailed",
    "__version__",
]

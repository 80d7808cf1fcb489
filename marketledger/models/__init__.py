"""marketledger data models — all Pydantic v2, all frozen (immutable)."""

from marketledger.models.journal import JournalEntry
from marketledger.models.listings import (
    FeeConfig,
    Listing,
    MarketStats,
    Quote,
    Receipt,
)
from marketledger.models.notifications import (
    NOTIFICATION_TYPE_MAP,
    Bought,
    NotificationBase,
    NotificationKind,
    Offered,
)

__all__ = [
    # listings
    "Listing",
    "FeeConfig",
    "Quote",
    "Receipt",
    "MarketStats",
    # notifications
    "NotificationKind",
    "NotificationBase",
    "Offered",
    "Bought",
    "NOTIFICATION_TYPE_MAP",
    # journal
    "JournalEntry",
]

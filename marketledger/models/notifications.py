"""Notifications emitted by the Marketplace Ledger at commit time.

Each notification is a frozen Pydantic model.  ``sequence`` is assigned by
the emitting ledger in commit order, so subscribers can detect gaps and
reorderings.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NotificationKind(str, Enum):
    """The two notification types a marketplace emits."""

    OFFERED = "offered"
    BOUGHT = "bought"


class NotificationBase(BaseModel):
    """Fields shared by every notification."""

    model_config = ConfigDict(frozen=True)

    schema_version: str = "2026-10"
    notification_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    market: str  # identity of the emitting marketplace
    sequence: int = Field(ge=1)
    payload_hash: str = ""  # SHA-256 of canonical payload bytes, set by the bus
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    kind: NotificationKind


class Offered(NotificationBase):
    """A new listing was created and its item taken into custody."""

    kind: NotificationKind = NotificationKind.OFFERED
    item_id: int
    registry_ref: str
    token_id: int
    price: int
    seller: str


class Bought(NotificationBase):
    """A listing was settled; ``price`` is the nominal listing price."""

    kind: NotificationKind = NotificationKind.BOUGHT
    item_id: int
    registry_ref: str
    token_id: int
    price: int
    seller: str
    buyer: str


# Registry for deserialization by kind
NOTIFICATION_TYPE_MAP: dict[NotificationKind, type[NotificationBase]] = {
    NotificationKind.OFFERED: Offered,
    NotificationKind.BOUGHT: Bought,
}

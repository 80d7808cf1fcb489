"""Notification journal entry model (append-only, hash-chained).

One entry per published notification, scoped to the emitting market.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from marketledger.models.notifications import NotificationKind


class JournalEntry(BaseModel):
    """A single entry in the notification journal."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    market: str
    sequence: int
    item_id: int
    kind: NotificationKind
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    payload_json: str  # canonical JSON of the notification
    payload_hash: str = ""
    previous_entry_hash: str = ""  # entry_hash of the previous entry for this market
    entry_hash: str = ""  # computed on append, seals this entry

"""Item Listing, fee configuration and settlement records.

A ``Listing`` is owned exclusively by the Marketplace Ledger.  It is frozen:
the only mutation a listing ever sees (``sold`` flipping to ``True``) is
performed by swapping in a copy, so a reader holding a reference never
observes a half-updated record.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Listing(BaseModel):
    """A seller's offer to sell one registry item at a fixed price.

    Examples
    --------
    >>> listing = Listing(
    ...     item_id=1, registry_ref="0xnft", token_id=1,
    ...     price=10**18, seller="0xseller",
    ... )
    >>> listing.sold
    False
    """

    model_config = ConfigDict(frozen=True)

    item_id: int = Field(ge=1)
    registry_ref: str
    token_id: int = Field(ge=0)
    price: int = Field(gt=0)  # base units
    seller: str
    sold: bool = False


class FeeConfig(BaseModel):
    """Fee collector and fee rate, fixed at marketplace construction."""

    model_config = ConfigDict(frozen=True)

    fee_account: str
    fee_percent: int = Field(ge=0)


class Quote(BaseModel):
    """Price breakdown for one listing, as shown to a prospective buyer."""

    model_config = ConfigDict(frozen=True)

    item_id: int
    price: int
    fee: int
    total_price: int
    sold: bool


class Receipt(BaseModel):
    """Confirmation of a settled purchase."""

    model_config = ConfigDict(frozen=True)

    item_id: int
    registry_ref: str
    token_id: int
    seller: str
    buyer: str
    price: int
    fee: int  # everything paid above ``price``, overpayment included
    paid: int


class MarketStats(BaseModel):
    """Summary statistics over every listing a marketplace has created."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    sold_count: int = 0
    unsold_count: int = 0
    listed_volume: int = 0
    settled_volume: int = 0

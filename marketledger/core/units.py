"""Display-unit <-> base-unit conversion.

The ledger only ever handles integer base units.  These helpers convert the
human-facing decimal amounts (``"2.02"``) used at the edges (CLI, demo) into
base units and back, with 18 decimals by default.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

DEFAULT_DECIMALS = 18


def to_base_units(amount: str | int | Decimal, decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a display amount into an integer number of base units.

    Raises ``ValueError`` for unparseable input, negative amounts, or
    amounts finer than one base unit.

    >>> to_base_units("2.02")
    2020000000000000000
    >>> to_base_units(1, decimals=2)
    100
    """
    if isinstance(amount, float):
        raise ValueError("Float amounts are ambiguous; pass a str or Decimal")
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal amount: {amount!r}") from exc
    if not value.is_finite() or value < 0:
        raise ValueError(f"Amount must be a finite non-negative number: {amount!r}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"{amount!r} has more than {decimals} decimal places"
        )
    return int(scaled)


def from_base_units(value: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Convert integer base units back to a display ``Decimal``.

    >>> from_base_units(2020000000000000000)
    Decimal('2.02')
    """
    display = Decimal(value).scaleb(-decimals)
    if display == display.to_integral_value():
        return display.quantize(Decimal(1))
    return display.normalize()

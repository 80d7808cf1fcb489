"""Overflow-checked integer arithmetic for value transfer.

Amounts live in the unsigned 256-bit domain.  Python integers never wrap, so
the check here is a range check: any result outside ``[0, UINT256_MAX]``
raises ``ArithmeticOverflow`` instead of being silently accepted.
"""

from __future__ import annotations

from marketledger.core.errors import ArithmeticOverflow

UINT256_MAX = 2**256 - 1

PERCENT_DENOMINATOR = 100


def require_amount(value: object) -> int:
    # bool is an int subclass; True is not an amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArithmeticOverflow(f"Amount must be an integer, got {value!r}")
    if value < 0 or value > UINT256_MAX:
        raise ArithmeticOverflow(f"Amount out of range: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    """Return ``a + b`` or raise ``ArithmeticOverflow``."""
    return require_amount(require_amount(a) + require_amount(b))


def checked_sub(a: int, b: int) -> int:
    """Return ``a - b`` or raise ``ArithmeticOverflow`` on underflow."""
    return require_amount(require_amount(a) - require_amount(b))


def checked_mul(a: int, b: int) -> int:
    """Return ``a * b`` or raise ``ArithmeticOverflow``."""
    return require_amount(require_amount(a) * require_amount(b))


def checked_div(a: int, b: int) -> int:
    """Return ``a // b`` (truncating, operands are non-negative)."""
    require_amount(a)
    if require_amount(b) == 0:
        raise ArithmeticOverflow("Division by zero")
    return a // b


def fee_for(price: int, fee_percent: int) -> int:
    """Nominal fee on *price*: ``floor(price * fee_percent / 100)``.

    >>> fee_for(2 * 10**18, 1)
    20000000000000000
    """
    return checked_div(checked_mul(price, fee_percent), PERCENT_DENOMINATOR)


def total_price(price: int, fee_percent: int) -> int:
    """Exact amount a buyer must attach: ``price + fee_for(price, fee_percent)``.

    >>> total_price(100, 1)
    101
    >>> total_price(99, 1)
    99
    """
    return checked_add(price, fee_for(price, fee_percent))

"""Payment-transfer primitive consumed by the Marketplace Ledger.

``PaymentRail`` is the interface; ``InMemoryPaymentRail`` keeps integer
balances per account and refuses any transfer it cannot honour in full.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from marketledger.core.arithmetic import checked_add, checked_sub
from marketledger.core.errors import ArithmeticOverflow, TransferRejected

logger = logging.getLogger(__name__)


@runtime_checkable
class PaymentRail(Protocol):
    """Interface for moving value between accounts."""

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...


class InMemoryPaymentRail:
    """Integer balances per account with all-or-nothing transfers.

    Examples
    --------
    >>> rail = InMemoryPaymentRail()
    >>> rail.credit("0xbuyer", 100)
    >>> rail.transfer("0xbuyer", "0xseller", 40)
    >>> rail.balance_of("0xseller")
    40
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._balances: dict[str, int] = {}

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def balances(self) -> dict[str, int]:
        """Snapshot of every non-zero balance."""
        with self._lock:
            return {k: v for k, v in self._balances.items() if v}

    def credit(self, account: str, amount: int) -> None:
        """Fund *account* with *amount* (faucet for tests and demos)."""
        with self._lock:
            self._balances[account] = checked_add(self.balance_of(account), amount)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move *amount* from *sender* to *recipient*.

        A zero amount is accepted and moves nothing.

        Raises
        ------
        TransferRejected
            If *amount* is not a non-negative integer, the sender cannot
            cover it, or the recipient balance would overflow.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise TransferRejected(f"Invalid transfer amount: {amount!r}")
        with self._lock:
            available = self.balance_of(sender)
            if available < amount:
                raise TransferRejected(
                    f"{sender} has {available}, cannot transfer {amount}"
                )
            if amount == 0 or sender == recipient:
                return
            try:
                new_recipient = checked_add(self.balance_of(recipient), amount)
            except ArithmeticOverflow as exc:
                raise TransferRejected(str(exc)) from exc
            self._balances[sender] = checked_sub(available, amount)
            self._balances[recipient] = new_recipient
        logger.debug("Transferred %d from %s to %s", amount, sender, recipient)
